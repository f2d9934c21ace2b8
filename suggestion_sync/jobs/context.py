from __future__ import annotations

from dataclasses import dataclass, field

from suggestion_sync.core.config import Settings, get_settings
from suggestion_sync.schemas.sites import Site
from suggestion_sync.services.repository import SuggestionRepository


@dataclass(slots=True)
class SyncContext:
    repository: SuggestionRepository
    site: Site | None = None
    settings: Settings = field(default_factory=get_settings)

    @property
    def requires_validation(self) -> bool:
        return bool(self.site is not None and self.site.requires_validation)

    @property
    def site_id(self) -> str:
        return self.site.id if self.site is not None else "unknown"
