"""FastCRUD accessor for archived documents.

Entity links are loaded and replaced by the document service, not here.
"""

from fastcrud import FastCRUD

from .models import Document

document_crud: FastCRUD = FastCRUD(Document)
