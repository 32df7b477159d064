"""
Node registration API router
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_coordinator, get_source_address
from ..models import NodePublic, NodeRegistered, RevokeRequest, RevokeResponse
from ..nodes.coordinator import NodeLifecycleCoordinator

router = APIRouter(prefix="/nodes", tags=["nodes"])


@router.post(
    "", response_model=NodeRegistered, status_code=status.HTTP_201_CREATED
)
async def register_node(
    source_address: str = Depends(get_source_address),
    coordinator: NodeLifecycleCoordinator = Depends(get_coordinator),
) -> NodeRegistered:
    """
    Register the calling host as a new node.

    The response holds the revocation secret. It is never returned again.
    """
    registered = await coordinator.register(source_address)
    return NodeRegistered(
        id=registered.id,
        revocation_secret=registered.revocation_secret,
        fqdn=registered.fqdn,
        record_type=registered.record_type.value,
    )


@router.get("/{node_id}", response_model=NodePublic)
async def get_node(
    node_id: str,
    coordinator: NodeLifecycleCoordinator = Depends(get_coordinator),
) -> NodePublic:
    record = await coordinator.get(node_id)
    return NodePublic(
        id=record.id,
        fqdn=coordinator.node_fqdn(record.id),
        address=record.address,
        record_type=record.record_type.value,
        ttl=record.ttl,
        revoked=record.revoked,
        created_at=record.created_at,
        revoked_at=record.revoked_at,
    )


@router.post("/{node_id}/revoke", response_model=RevokeResponse)
async def revoke_node(
    node_id: str,
    body: RevokeRequest,
    coordinator: NodeLifecycleCoordinator = Depends(get_coordinator),
) -> RevokeResponse:
    """
    Revoke a node with the secret issued at registration.

    Succeeds once the node is marked revoked; a failed DNS delete is reported
    in ``warning`` rather than as an error.
    """
    result = await coordinator.revoke(node_id, body.revocation_secret)
    return RevokeResponse(
        id=result.node_id,
        revoked=True,
        dns_deleted=result.dns_deleted,
        warning=result.warning.detail if result.warning else None,
    )
