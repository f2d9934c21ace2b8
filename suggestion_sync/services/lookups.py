from __future__ import annotations

import logging

from suggestion_sync.core.serialization import safe_stringify
from suggestion_sync.schemas.sites import Audit, Site
from suggestion_sync.services.repository import RepositoryError, SuggestionRepository

logger = logging.getLogger(__name__)

TOP_PAGES_SOURCE = "ahrefs"
TOP_PAGES_GEO = "global"


async def retrieve_site_by_site_id(repository: SuggestionRepository, site_id: str) -> Site | None:
    try:
        site = await repository.get_site(site_id)
    except Exception as exc:
        raise RepositoryError(f"Error getting site {site_id}: {exc}") from exc
    if site is None:
        logger.warning("site not found for site_id=%s", site_id)
        return None
    return site


async def retrieve_audit_by_id(repository: SuggestionRepository, audit_id: str) -> Audit | None:
    try:
        audit = await repository.get_audit(audit_id)
    except Exception as exc:
        raise RepositoryError(f"Error getting audit {audit_id}: {exc}") from exc
    if audit is None:
        logger.warning("audit not found for audit_id=%s", audit_id)
        return None
    return audit


async def get_top_pages_for_site_id(repository: SuggestionRepository, site_id: str) -> list[dict[str, str]]:
    try:
        pages = await repository.list_top_pages(site_id, TOP_PAGES_SOURCE, TOP_PAGES_GEO)
    except Exception as exc:
        logger.error("error retrieving top pages for site_id=%s: %s", site_id, exc)
        raise

    logger.debug("received top pages response: %s", safe_stringify(pages))
    if not pages:
        logger.info("no top pages found for site_id=%s", site_id)
        return []
    logger.info("found %s top pages for site_id=%s", len(pages), site_id)
    return [{"url": page.url} for page in pages]


async def get_ims_org_id(repository: SuggestionRepository, site: Site) -> str | None:
    if not site.organization_id:
        logger.warning("no organization id found for site=%s", site.base_url)
        return None

    try:
        organization = await repository.get_organization(site.organization_id)
    except Exception as exc:
        logger.warning("failed to get IMS org id for site=%s: %s", site.base_url, exc)
        return None

    ims_org_id = organization.ims_org_id if organization is not None else None
    if not ims_org_id:
        logger.warning("no IMS org id found for organization_id=%s", site.organization_id)
        return None
    return ims_org_id
