"""Cache families shared by the archive services."""

DOCUMENT_LIST = "documents"
DOCUMENT_DETAIL = "document"
ENTITY_LIST = "entities"
ENTITY_DETAIL = "entity"
SEARCH = "search"
STATS = "stats"

# Everything a document or entity write can make stale.
ARCHIVE_FAMILIES = (DOCUMENT_LIST, DOCUMENT_DETAIL, ENTITY_LIST, ENTITY_DETAIL, SEARCH, STATS)
