"""
User accounts for the auth layer, keyed by lower-cased email
"""
from typing import Optional

from restock_agent.database.document_store import DocumentStore
from restock_agent.errors import DuplicateDocumentError, ValidationError
from restock_agent.models import UserInDB, new_id, utc_now

COLLECTION = "users"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    def __init__(self, store: DocumentStore):
        self.store = store

    def get_by_email(self, email: str) -> Optional[UserInDB]:
        body = self.store.find(COLLECTION, normalize_email(email))
        if body is None:
            return None
        return UserInDB.model_validate(body)

    def get_by_id(self, user_id: str) -> Optional[UserInDB]:
        # owner_id of a user document is the user's own id
        bodies = self.store.find_by_owner(COLLECTION, user_id)
        if not bodies:
            return None
        return UserInDB.model_validate(bodies[0])

    def create(self, email: str, name: str, hashed_password: str) -> UserInDB:
        """
        Raises:
            ValidationError: the email is already registered
        """
        user = UserInDB(
            id=new_id(),
            email=normalize_email(email),
            name=name.strip(),
            hashed_password=hashed_password,
            created_at=utc_now(),
        )
        try:
            self.store.insert(
                COLLECTION, user.email, user.id, user.model_dump(mode="json", by_alias=True)
            )
        except DuplicateDocumentError:
            raise ValidationError("User already exists")
        return user
