from __future__ import annotations

import pytest

from suggestion_sync.core.config import Settings
from suggestion_sync.jobs.context import SyncContext
from suggestion_sync.schemas.sites import Site
from suggestion_sync.schemas.suggestions import Opportunity
from suggestion_sync.services.store import InMemoryStore
from tests.helpers import OPPORTUNITY_ID, SITE_ID


@pytest.fixture
def opportunity() -> Opportunity:
    return Opportunity(id=OPPORTUNITY_ID, site_id=SITE_ID, type="alt-text")


@pytest.fixture
def store(opportunity: Opportunity) -> InMemoryStore:
    store = InMemoryStore()
    store.sites[SITE_ID] = Site(id=SITE_ID, base_url="https://example.com")
    store.add_opportunity(opportunity)
    return store


@pytest.fixture
def context(store: InMemoryStore) -> SyncContext:
    return SyncContext(repository=store, site=store.sites[SITE_ID], settings=Settings(otel_enabled=False))


@pytest.fixture
def validating_context(store: InMemoryStore) -> SyncContext:
    site = Site(id=SITE_ID, base_url="https://example.com", requires_validation=True)
    return SyncContext(repository=store, site=site, settings=Settings(otel_enabled=False))
