"""Smoke-check imports for the package modules.

Guards against refactors that would break the wiring between the record
store, the services and the HTTP layer.
"""

from __future__ import annotations

from importlib import import_module
from types import ModuleType

import pytest

MODULES_AND_SYMBOLS = [
    ("temp_media.config", "load_config"),
    ("temp_media.config", "TempMediaSettings"),
    ("temp_media.dependencies", "build_services"),
    ("temp_media.events", "EventDispatcher"),
    ("temp_media.exceptions", "InvalidOrExpiredIdsError"),
    ("temp_media.lifecycle", "run_periodic_cleanup"),
    ("temp_media.main", "create_app"),
    ("temp_media.api.temp_media_api", "build_temp_media_router"),
    ("temp_media.api.errors", "ApiError"),
    ("temp_media.db.db_models", "TempMediaModel"),
    ("temp_media.media.media_cleanup", "CleanupEngine"),
    ("temp_media.media.media_library", "HasMedia"),
    ("temp_media.media.ownership", "OwnershipGate"),
    ("temp_media.media.temp_media_service", "TempMediaService"),
    ("temp_media.media.transfer_service", "MediaTransferService"),
    ("temp_media.repositories.temp_media_repository", "TempMediaRepository"),
]


@pytest.mark.parametrize(("module_name", "symbol"), MODULES_AND_SYMBOLS)
def test_importable_symbols(module_name: str, symbol: str) -> None:
    """Import modules and verify that public symbols are exposed."""

    module: ModuleType = import_module(module_name)
    assert hasattr(module, symbol), f"{module_name} missing {symbol}"
