"""Unit tests for the Firestore source and Supabase target repositories."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import GoogleAPIError
from postgrest.exceptions import APIError

from gigledger.core.exceptions import ConfigurationError, SourceReadError, TargetReadError, TargetWriteError
from gigledger.repositories.firestore_repo import FirestoreSourceRepository, initialize_firebase
from gigledger.repositories.supabase_repo import ADMIN_PROFILES_RPC, SupabaseTargetRepository


def _doc(doc_id: str, data: dict | None) -> MagicMock:
    doc = MagicMock()
    doc.id = doc_id
    doc.to_dict.return_value = data
    return doc


@pytest.fixture
def mock_db() -> MagicMock:
    return MagicMock()


@pytest.fixture
def mock_auth() -> MagicMock:
    return MagicMock()


@pytest.fixture
def firestore_repo(mock_db, mock_auth) -> FirestoreSourceRepository:
    return FirestoreSourceRepository(db=mock_db, auth_client=mock_auth)


@pytest.fixture
def mock_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def supabase_repo(mock_client) -> SupabaseTargetRepository:
    return SupabaseTargetRepository(client=mock_client)


class TestInitializeFirebase:
    """Credential loading for the Firebase Admin SDK."""

    def test_missing_credentials_file(self):
        with patch("gigledger.repositories.firestore_repo.firebase_admin") as mock_admin, \
                patch("gigledger.repositories.firestore_repo.credentials.Certificate",
                      side_effect=FileNotFoundError("no such file")):
            mock_admin._apps = {}
            with pytest.raises(ConfigurationError) as exc_info:
                initialize_firebase("/secrets/missing.json")

        assert exc_info.value.details["credentials_path"] == "/secrets/missing.json"
        mock_admin.initialize_app.assert_not_called()

    def test_invalid_service_account(self):
        with patch("gigledger.repositories.firestore_repo.firebase_admin") as mock_admin, \
                patch("gigledger.repositories.firestore_repo.credentials.Certificate",
                      side_effect=ValueError("Invalid service account certificate")):
            mock_admin._apps = {}
            with pytest.raises(ConfigurationError):
                initialize_firebase("/secrets/bad.json")

    def test_already_initialized(self):
        with patch("gigledger.repositories.firestore_repo.firebase_admin") as mock_admin:
            mock_admin._apps = {"[DEFAULT]": object()}
            initialize_firebase("/secrets/firebase.json")

        mock_admin.initialize_app.assert_not_called()


class TestFirestoreSourceRepository:
    """Tests for reads from Firestore and Firebase Auth."""

    def test_list_users_iterates_all_pages(self, firestore_repo, mock_auth):
        mock_auth.list_users.return_value.iterate_all.return_value = iter([
            SimpleNamespace(uid="u1", email="a@example.com"),
            SimpleNamespace(uid="u2", email=None),
        ])

        users = firestore_repo.list_users()

        assert [(u.id, u.email) for u in users] == [("u1", "a@example.com"), ("u2", None)]

    def test_list_users_failure(self, firestore_repo, mock_auth):
        mock_auth.list_users.side_effect = FirebaseError("UNAVAILABLE", "auth service down")
        with pytest.raises(SourceReadError):
            firestore_repo.list_users()

    def test_list_vehicles(self, firestore_repo, mock_db):
        mock_db.collection.return_value.stream.return_value = [
            _doc("veh-1", {"userId": "u1", "name": "Onix"}),
            _doc("veh-2", None),
        ]

        documents = firestore_repo.list_vehicles()

        mock_db.collection.assert_called_with("vehicles")
        assert documents == [("veh-1", {"userId": "u1", "name": "Onix"}), ("veh-2", {})]

    def test_collection_names(self, firestore_repo, mock_db):
        mock_db.collection.return_value.stream.return_value = []
        firestore_repo.list_transactions()
        firestore_repo.list_goals()
        names = [c.args[0] for c in mock_db.collection.call_args_list]
        assert names == ["transactions", "goals"]

    def test_read_failure(self, firestore_repo, mock_db):
        mock_db.collection.return_value.stream.side_effect = GoogleAPIError("deadline exceeded")
        with pytest.raises(SourceReadError) as exc_info:
            firestore_repo.list_goals()
        assert exc_info.value.details["collection"] == "goals"


class TestSupabaseTargetRepository:
    """Tests for Supabase reads and writes."""

    def test_requires_credentials_without_client(self):
        with pytest.raises(ValueError):
            SupabaseTargetRepository()

    def test_list_users_pages_until_short_page(self, supabase_repo, mock_client):
        supabase_repo.USERS_PAGE_SIZE = 2
        mock_client.auth.admin.list_users.side_effect = [
            [SimpleNamespace(id="s1", email="a@example.com"), SimpleNamespace(id="s2", email="b@example.com")],
            [SimpleNamespace(id="s3", email="c@example.com")],
        ]

        users = supabase_repo.list_users()

        assert [u.id for u in users] == ["s1", "s2", "s3"]
        pages = [c.kwargs["page"] for c in mock_client.auth.admin.list_users.call_args_list]
        assert pages == [1, 2]

    def test_list_users_failure(self, supabase_repo, mock_client):
        mock_client.auth.admin.list_users.side_effect = httpx.ConnectError("connection refused")
        with pytest.raises(TargetReadError):
            supabase_repo.list_users()

    def test_insert_one_returns_generated_id(self, supabase_repo, mock_client):
        mock_client.table.return_value.insert.return_value.execute.return_value = SimpleNamespace(
            data=[{"id": "3f7c-uuid"}]
        )

        new_id = supabase_repo.insert_one("vehicles", {"name": "Onix"})

        assert new_id == "3f7c-uuid"
        mock_client.table.assert_called_with("vehicles")
        mock_client.table.return_value.insert.assert_called_with({"name": "Onix"})

    def test_insert_one_api_error(self, supabase_repo, mock_client):
        mock_client.table.return_value.insert.return_value.execute.side_effect = APIError(
            {"message": "duplicate key value violates unique constraint", "code": "23505"}
        )
        with pytest.raises(TargetWriteError) as exc_info:
            supabase_repo.insert_one("vehicles", {"name": "Onix"})
        assert exc_info.value.table == "vehicles"
        assert "duplicate key" in exc_info.value.message

    def test_insert_one_without_returned_row(self, supabase_repo, mock_client):
        mock_client.table.return_value.insert.return_value.execute.return_value = SimpleNamespace(data=[])
        with pytest.raises(TargetWriteError):
            supabase_repo.insert_one("goals", {"title": "x"})

    def test_insert_many(self, supabase_repo, mock_client):
        rows = [{"amount": 1}, {"amount": 2}]
        assert supabase_repo.insert_many("transactions", rows) == 2
        mock_client.table.return_value.insert.assert_called_once_with(rows)

    def test_insert_many_empty_is_noop(self, supabase_repo, mock_client):
        assert supabase_repo.insert_many("transactions", []) == 0
        mock_client.table.assert_not_called()

    def test_insert_many_network_error(self, supabase_repo, mock_client):
        mock_client.table.return_value.insert.return_value.execute.side_effect = httpx.ReadTimeout("timed out")
        with pytest.raises(TargetWriteError) as exc_info:
            supabase_repo.insert_many("transactions", [{"amount": 1}])
        assert exc_info.value.details["rows"] == 1

    def test_list_profiles(self, supabase_repo, mock_client):
        mock_client.rpc.return_value.execute.return_value = SimpleNamespace(data=[{"id": "p1", "plan": "PRO"}])
        assert supabase_repo.list_profiles() == [{"id": "p1", "plan": "PRO"}]
        mock_client.rpc.assert_called_with(ADMIN_PROFILES_RPC)
