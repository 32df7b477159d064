"""
AWS Route 53 zone

boto3 is synchronous, so every API call is pushed to a worker thread with
asyncer.asyncify.
"""

from typing import Any

import boto3
from asyncer import asyncify
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import UpstreamError
from ..logger import logger
from .types import (
    AliasRecord,
    ChangeBatch,
    ChangeBatchResult,
    ChangeOutcome,
    DNSChange,
    RecordType,
)
from .zone import DNSZone

_CLIENT_CONFIG = Config(
    retries={"max_attempts": 3, "mode": "standard"},
    connect_timeout=5,
    read_timeout=10,
)


def _to_route53_change(change: DNSChange) -> dict[str, Any]:
    return {
        "Action": change.action.value,
        "ResourceRecordSet": {
            "Name": change.name,
            "Type": change.record_type.value,
            "TTL": change.ttl,
            "ResourceRecords": [{"Value": change.value}],
        },
    }


class Route53Zone(DNSZone):
    def __init__(
        self,
        domain: str,
        hosted_zone_id: str,
        region: str | None = None,
        profile: str | None = None,
        client: Any = None,
    ) -> None:
        self._domain = domain.rstrip(".")
        self._hosted_zone_id = hosted_zone_id
        self._region = region
        self._profile = profile
        self._client = client

    def get_domain(self) -> str:
        return self._domain

    def _get_client(self):
        if self._client is None:
            session = boto3.Session(
                profile_name=self._profile, region_name=self._region
            )
            self._client = session.client("route53", config=_CLIENT_CONFIG)
        return self._client

    def _change_resource_record_sets(self, changes: list[DNSChange], comment: str):
        change_batch: dict[str, Any] = {
            "Changes": [_to_route53_change(change) for change in changes]
        }
        if comment:
            change_batch["Comment"] = comment
        response = self._get_client().change_resource_record_sets(
            HostedZoneId=self._hosted_zone_id, ChangeBatch=change_batch
        )
        return response["ChangeInfo"]["Id"]

    def _list_cname_record_sets(self) -> list[dict[str, Any]]:
        paginator = self._get_client().get_paginator("list_resource_record_sets")
        record_sets = []
        for page in paginator.paginate(HostedZoneId=self._hosted_zone_id):
            for record_set in page["ResourceRecordSets"]:
                # Route 53 alias targets carry no ResourceRecords; they are not ours
                if record_set["Type"] == RecordType.CNAME.value and record_set.get(
                    "ResourceRecords"
                ):
                    record_sets.append(record_set)
        return record_sets

    async def submit_change_batch(self, batch: ChangeBatch) -> ChangeBatchResult:
        """
        Submit the batch. Route 53 applies a batch all-or-nothing, so when it
        rejects a multi-change batch as invalid each change is retried on its
        own to find out which ones can be applied.
        """
        if not batch.changes:
            return ChangeBatchResult()

        try:
            change_id = await asyncify(self._change_resource_record_sets)(
                batch.changes, batch.comment
            )
        except ClientError as e:
            if not self._is_invalid_change_batch(e):
                raise UpstreamError(
                    f"Route 53 rejected change batch: {e}", zone=self._hosted_zone_id
                ) from e
            if len(batch.changes) == 1:
                return ChangeBatchResult.rejected(batch, str(e))
            logger.warning(
                f"Route 53 rejected batch of {len(batch)} changes, "
                f"applying individually: {e}"
            )
            return await self._submit_individually(batch)
        except BotoCoreError as e:
            raise UpstreamError(
                f"Route 53 request failed: {e}", zone=self._hosted_zone_id
            ) from e

        logger.info(f"Route 53 accepted {len(batch)} changes as {change_id}")
        return ChangeBatchResult(
            outcomes=[ChangeOutcome(change, True) for change in batch.changes],
            change_id=change_id,
        )

    async def _submit_individually(self, batch: ChangeBatch) -> ChangeBatchResult:
        result = ChangeBatchResult()
        for change in batch.changes:
            try:
                change_id = await asyncify(self._change_resource_record_sets)(
                    [change], batch.comment
                )
            except ClientError as e:
                if not self._is_invalid_change_batch(e):
                    raise UpstreamError(
                        f"Route 53 request failed for {change.name}: {e}",
                        zone=self._hosted_zone_id,
                    ) from e
                result.outcomes.append(ChangeOutcome(change, False, str(e)))
                continue
            except BotoCoreError as e:
                raise UpstreamError(
                    f"Route 53 request failed for {change.name}: {e}",
                    zone=self._hosted_zone_id,
                ) from e
            result.outcomes.append(ChangeOutcome(change, True))
            result.change_id = change_id
        return result

    async def list_alias_records(self) -> list[AliasRecord]:
        try:
            record_sets = await asyncify(self._list_cname_record_sets)()
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError(
                f"Failed to list Route 53 records: {e}", zone=self._hosted_zone_id
            ) from e

        aliases = []
        for record_set in record_sets:
            alias = self.alias_from_cname(
                record_set["Name"],
                record_set["ResourceRecords"][0]["Value"],
                record_set["TTL"],
            )
            if alias is not None:
                aliases.append(alias)
        return aliases

    @staticmethod
    def _is_invalid_change_batch(e: ClientError) -> bool:
        return e.response.get("Error", {}).get("Code") in (
            "InvalidChangeBatch",
            "InvalidInput",
        )
