"""Webhook lifecycle reconciliation for JoAi trigger nodes.

Keeps exactly one remote subscription per (workflow, node) identity:

* ``check_exists`` is the activation-time probe. An exact URL match means the
  subscription is in place. Without a local secret the record's secret is
  taken over, or the record is replaced when it has none. Records carrying
  this node's secret but another URL are stale (the public URL drifted) and
  are removed so ``create`` runs.
* ``create`` registers the subscription. Failures are fatal to activation.
* ``delete`` is best-effort teardown. It never raises; the outcome is
  reported through a :class:`DeleteReport`.
"""

import asyncio
import logging
from typing import List, Optional

from core.config import Settings, get_settings
from core.exceptions import WebhookRegistrationError
from schemas.joai import DeleteReport, NodeStaticData, WebhookRecord, WebhookRecordRequest
from .client import WebhookDirectory
from .identity import SubscriptionIdentity

logger = logging.getLogger(__name__)


class WebhookReconciler:
    """Reconciles one node instance's desired subscription with the remote directory."""

    def __init__(
        self,
        directory: WebhookDirectory,
        identity: SubscriptionIdentity,
        static_data: Optional[NodeStaticData] = None,
        settings: Optional[Settings] = None
    ):
        self.directory = directory
        self.identity = identity
        self.static_data = static_data if static_data is not None else NodeStaticData()
        self.settings = settings or get_settings()

    @property
    def agent_id(self) -> str:
        return self.identity.owner_agent_id

    def _matches_url(self, record: WebhookRecord) -> bool:
        return record.url == self.identity.target_url

    def _matches_secret(self, record: WebhookRecord) -> bool:
        token = record.secret_token
        return bool(token) and token == self.identity.secret_token

    async def check_exists(self) -> bool:
        """Whether the desired subscription is already registered.

        Deletes stale subscriptions of this node as a side effect.
        """
        try:
            records = await self.directory.list_webhooks(self.agent_id)
        except Exception as e:
            logger.error(f"Failed to list webhooks for agent {self.agent_id}: {e}")
            return False

        for record in records:
            if self._matches_url(record):
                if not self.identity.secret_token:
                    # Stored secret lost (random mode after a restart)
                    if not record.secret_token:
                        logger.info(f"Webhook {record.id} carries no secret token, replacing it")
                        failures = await self._delete_all([record], DeleteReport(listed=len(records)))
                        if failures:
                            logger.warning(f"Webhook {record.id} could not be removed for agent {self.agent_id}")
                        return False
                    self.static_data.secret_token = record.secret_token
                    logger.info(f"Recovered secret token of webhook {record.id} from the remote subscription")
                self.static_data.webhook_id = record.id
                self.static_data.agent_id = self.agent_id
                logger.info(f"Webhook {record.id} already registered for {self.identity.target_url}")
                return True

        stale = [record for record in records if self._matches_secret(record)]
        if stale:
            logger.info(
                f"Found {len(stale)} stale webhook(s) for agent {self.agent_id}, "
                f"target URL is now {self.identity.target_url}"
            )
            failures = await self._delete_all(stale, DeleteReport(listed=len(records)))
            if failures:
                logger.warning(f"{failures} stale webhook(s) could not be removed for agent {self.agent_id}")
            if self.static_data.webhook_id in {record.id for record in stale}:
                self.static_data.webhook_id = None

        return False

    def build_request(self) -> WebhookRecordRequest:
        return WebhookRecordRequest(
            name=self.identity.name,
            url=self.identity.target_url,
            triggers=sorted(self.identity.triggers),
            headers=self.identity.secret_headers,
            active=True,
            description=self.identity.description,
            verify_ssl=True,
            timeout=self.settings.JOAI_WEBHOOK_TIMEOUT,
            max_retries=self.settings.JOAI_WEBHOOK_MAX_RETRIES,
        )

    async def create(self) -> Optional[WebhookRecord]:
        """Register the subscription. Raises WebhookRegistrationError on failure."""
        request = self.build_request()
        try:
            record = await self.directory.create_webhook(self.agent_id, request)
        except Exception as e:
            logger.error(f"Failed to create webhook for agent {self.agent_id}: {e}")
            raise WebhookRegistrationError(
                f"Failed to create webhook: {e}",
                details={"agent_id": self.agent_id, "url": self.identity.target_url}
            ) from e

        self.static_data.agent_id = self.agent_id
        if record is not None:
            self.static_data.webhook_id = record.id
            logger.info(f"Created webhook {record.id} for agent {self.agent_id} -> {self.identity.target_url}")
        else:
            logger.info(f"Created webhook for agent {self.agent_id} -> {self.identity.target_url} (no id returned)")
        return record

    async def delete(self) -> DeleteReport:
        """Remove every subscription owned by this node instance."""
        report = DeleteReport()
        try:
            records = await self.directory.list_webhooks(self.agent_id)
        except Exception as e:
            logger.warning(f"Failed to list webhooks for agent {self.agent_id} during teardown: {e}")
            report.list_error = str(e)
            return report

        remembered = self.static_data.webhook_id
        targets = [
            record for record in records
            if self._matches_url(record)
            or self._matches_secret(record)
            or (remembered is not None and record.id == remembered)
        ]
        report.listed = len(records)
        report.matched = len(targets)

        await self._delete_all(targets, report)

        if remembered is not None and remembered not in report.failed:
            self.static_data.webhook_id = None

        if report.failure_count:
            logger.warning(
                f"Webhook teardown for agent {self.agent_id} left {report.failure_count} "
                f"failure(s): {sorted(report.failed)}"
            )
        else:
            logger.info(f"Deleted {len(report.deleted)} webhook(s) for agent {self.agent_id}")
        return report

    async def _delete_all(self, records: List[WebhookRecord], report: DeleteReport) -> int:
        results = await asyncio.gather(
            *(self.directory.delete_webhook(self.agent_id, record.id) for record in records),
            return_exceptions=True
        )
        failures = 0
        for record, result in zip(records, results):
            if isinstance(result, BaseException):
                failures += 1
                report.failed[record.id] = str(result) or type(result).__name__
            else:
                report.deleted.append(record.id)
        return failures
