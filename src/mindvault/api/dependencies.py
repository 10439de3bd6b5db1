"""FastAPI dependencies resolving the per-application collaborators."""

from fastapi import Request

from mindvault.core.config import Settings
from mindvault.services.upload_sessions import UploadSessionManager
from mindvault.storage.credentials import CredentialStore
from mindvault.storage.documents import DocumentStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_upload_manager(request: Request) -> UploadSessionManager:
    return request.app.state.upload_manager


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store
