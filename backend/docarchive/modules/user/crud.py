"""CRUD operations for users and revoked tokens using FastCRUD."""

from fastcrud import FastCRUD

from .models import RevokedToken, User

user_crud: FastCRUD = FastCRUD(User)
revoked_token_crud: FastCRUD = FastCRUD(RevokedToken)
