"""Construction of the coordinator and reconciler from settings."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from .aliases.manifest import FileManifestSource, HTTPManifestSource, ManifestSource
from .aliases.reconciler import AliasReconciler
from .config import Settings
from .db.database import create_engine, create_session_maker
from .dns.route53 import Route53Zone
from .nodes.coordinator import NodeLifecycleCoordinator
from .nodes.store import SQLIdentityStore


@dataclass
class Services:
    coordinator: NodeLifecycleCoordinator
    reconciler: AliasReconciler
    engine: AsyncEngine | None = None

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def build_manifest_source(settings: Settings) -> ManifestSource:
    if settings.manifest.url or not settings.manifest.path:
        return HTTPManifestSource(settings.manifest.url, settings.manifest.timeout)
    return FileManifestSource(settings.manifest.path)


def build_services(settings: Settings) -> Services:
    engine = create_engine(settings.database_url)
    store = SQLIdentityStore(create_session_maker(engine))
    zone = Route53Zone(
        settings.base_domain,
        settings.route53.hosted_zone_id,
        region=settings.route53.region,
        profile=settings.route53.profile,
    )
    return Services(
        coordinator=NodeLifecycleCoordinator(store, zone, ttl=settings.node_ttl),
        reconciler=AliasReconciler(
            zone, build_manifest_source(settings), ttl=settings.alias_ttl
        ),
        engine=engine,
    )
