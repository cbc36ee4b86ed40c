"""
Firestore Source Repository

Read-only access to the legacy Firebase project that the web app is
migrating away from.

Data Structure:
    Firebase Auth users          - uid, email
    vehicles/{vehicle_id}        - userId, name, brand, model, year, ...
    transactions/{txn_id}        - userId, vehicleId, type, amount, date, ...
    goals/{goal_id}              - userId, title, targetAmount, linkedVehicleIds, ...
"""

from typing import Any, Optional

import firebase_admin
from firebase_admin import auth, credentials, firestore
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import GoogleAPIError

from gigledger.core.exceptions import ConfigurationError, SourceReadError
from gigledger.core.logging import get_logger
from gigledger.schemas.models import SourceUser

logger = get_logger("gigledger.repositories.firestore")

SourceDocument = tuple[str, dict[str, Any]]


def initialize_firebase(credentials_path: Optional[str] = None) -> None:
    """
    Initialize the Firebase Admin SDK once per process.

    Raises:
        ConfigurationError: If the service account file is missing or invalid
    """
    if firebase_admin._apps:
        return
    try:
        if credentials_path:
            firebase_admin.initialize_app(credentials.Certificate(credentials_path))
        else:
            # Application Default Credentials
            firebase_admin.initialize_app()
    except (ValueError, OSError) as e:
        raise ConfigurationError(
            f"Could not load Firebase credentials: {e}",
            details={"credentials_path": credentials_path},
        ) from e


class FirestoreSourceRepository:
    """Bulk reader over the Firebase project (Auth users and Firestore collections)."""

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        db=None,
        auth_client=None,
    ) -> None:
        if db is None or auth_client is None:
            initialize_firebase(credentials_path)

        self.db = db if db is not None else firestore.client()
        self.auth = auth_client if auth_client is not None else auth

        # Collection references
        self.vehicles_collection = "vehicles"
        self.transactions_collection = "transactions"
        self.goals_collection = "goals"

    # =========================================================================
    # Users
    # =========================================================================

    def list_users(self) -> list[SourceUser]:
        """
        List every Firebase Auth user, following pagination.

        Returns:
            Users with their uid and email (email may be None)
        """
        try:
            page = self.auth.list_users()
            users = [SourceUser(id=user.uid, email=user.email) for user in page.iterate_all()]
        except (FirebaseError, GoogleAPIError) as e:
            raise SourceReadError(f"Failed to list Firebase users: {e}") from e

        logger.debug(f"Listed {len(users)} Firebase users")
        return users

    # =========================================================================
    # Collections
    # =========================================================================

    def list_documents(self, collection: str) -> list[SourceDocument]:
        """
        Read a whole collection.

        Args:
            collection: Top-level collection name

        Returns:
            (document id, document data) pairs in stream order
        """
        try:
            documents = [(doc.id, doc.to_dict() or {}) for doc in self.db.collection(collection).stream()]
        except GoogleAPIError as e:
            raise SourceReadError(
                f"Failed to read collection '{collection}': {e}",
                details={"collection": collection},
            ) from e

        logger.debug(f"Read {len(documents)} documents from '{collection}'")
        return documents

    def list_vehicles(self) -> list[SourceDocument]:
        return self.list_documents(self.vehicles_collection)

    def list_transactions(self) -> list[SourceDocument]:
        return self.list_documents(self.transactions_collection)

    def list_goals(self) -> list[SourceDocument]:
        return self.list_documents(self.goals_collection)
