from fastapi import Request

from .aliases.reconciler import AliasReconciler
from .config import settings
from .nodes.coordinator import NodeLifecycleCoordinator
from .services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_coordinator(request: Request) -> NodeLifecycleCoordinator:
    return get_services(request).coordinator


def get_reconciler(request: Request) -> AliasReconciler:
    return get_services(request).reconciler


def get_source_address(request: Request) -> str:
    """
    Address the node is registered under.

    The first X-Forwarded-For hop is used only when the service is configured
    to sit behind a trusted proxy; otherwise clients could register any
    address they like.
    """
    if settings.trust_forwarded_for:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host
    return ""
