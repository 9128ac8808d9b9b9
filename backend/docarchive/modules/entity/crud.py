"""CRUD operations for entities using FastCRUD."""

from fastcrud import FastCRUD

from .models import Entity

entity_crud: FastCRUD = FastCRUD(Entity)
