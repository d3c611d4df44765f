"""Service wiring and FastAPI dependencies.

Repositories keep their collections in memory, so one container instance is
shared by the HTTP handlers and the background tasks of the process.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Union

from fastapi import Depends

from ..application.chain_poller import ChainPoller
from ..application.issuer import IssuerService
from ..application.notifier import Notifier
from ..application.reconciler import MatchPolicy, ReconciliationService, Reconciler
from ..application.scheduler import PeriodicTask
from ..domain.repositories import VerifiedRecordRepository
from ..env import Settings, get_settings
from ..infrastructure.intent_repository_impl import PendingIntentRepositoryImpl
from ..infrastructure.signature_ledger_impl import SignatureLedgerImpl
from ..infrastructure.solana.rpc_client import SolanaRpcClient
from ..infrastructure.storage import KeyValueStore, build_key_value_store
from ..infrastructure.verified_repository_impl import VerifiedRecordRepositoryImpl


class ServiceContainer:
    """Builds and owns every long-lived component of the service."""

    def __init__(self, settings: Settings, store: Optional[KeyValueStore] = None):
        self.settings = settings
        self.store = store or build_key_value_store(settings)

        self.intent_repository = PendingIntentRepositoryImpl(self.store)
        self.verified_repository = VerifiedRecordRepositoryImpl(self.store)
        self.signature_ledger = SignatureLedgerImpl(self.store)
        self.notifier = Notifier(queue_size=settings.subscriber_queue_size)
        self.rpc_client = SolanaRpcClient(
            settings.solana_rpc_url,
            timeout=settings.rpc_timeout_seconds,
            max_attempts=settings.rpc_max_attempts,
            retry_delay=settings.rpc_retry_delay_seconds,
        )

        self.issuer_service = IssuerService(
            self.intent_repository,
            receiving_address=settings.receiving_address,
            ttl=timedelta(seconds=settings.intent_ttl_seconds),
            min_lamports=settings.min_lamports,
            max_lamports=settings.max_lamports,
            collision_retries=settings.amount_collision_retries,
        )
        self.reconciliation_service = ReconciliationService(
            poller=ChainPoller(
                self.rpc_client,
                receiving_address=settings.receiving_address,
                ledger=self.signature_ledger,
                signature_limit=settings.signature_limit,
            ),
            reconciler=Reconciler(MatchPolicy(settings.match_policy)),
            intent_repository=self.intent_repository,
            verified_repository=self.verified_repository,
            ledger=self.signature_ledger,
            notifier=self.notifier,
        )

        self.reconciliation_task = PeriodicTask(
            "reconciliation",
            settings.poll_interval_seconds,
            self.reconciliation_service.run_tick,
        )
        self.sweep_task = PeriodicTask(
            "expiry-sweep",
            settings.sweep_interval_seconds,
            self.issuer_service.sweep,
            run_immediately=False,
        )

    async def start(self) -> None:
        await self.reconciliation_service.repair()
        self.reconciliation_task.start()
        self.sweep_task.start()

    async def stop(self) -> None:
        await self.reconciliation_task.stop()
        await self.sweep_task.stop()
        await self.notifier.close()
        await self.rpc_client.aclose()
        await self.store.close()


_container: Union[ServiceContainer, None] = None


def get_container() -> ServiceContainer:
    """Get or create the process-wide service container."""
    global _container
    if _container is None:
        _container = ServiceContainer(get_settings())
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    global _container
    _container = container


def get_app_settings(
    container: ServiceContainer = Depends(get_container),
) -> Settings:
    """Get settings of the running container."""
    return container.settings


def get_issuer_service(
    container: ServiceContainer = Depends(get_container),
) -> IssuerService:
    """Get issuer service."""
    return container.issuer_service


def get_verified_repository(
    container: ServiceContainer = Depends(get_container),
) -> VerifiedRecordRepository:
    """Get verified record repository."""
    return container.verified_repository


def get_notifier(
    container: ServiceContainer = Depends(get_container),
) -> Notifier:
    """Get event notifier."""
    return container.notifier
