"""
Service wiring for the web layer.

Each application owns one Services built from the Config it was created
with. Routes receive it through the ``get_services`` dependency.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from decimal import Decimal

from fastapi import FastAPI, Request

from core.actors import ActorDirectory
from core.submission import EvidenceStorage, SubmissionLifecycle, SubmissionRepository
from core.submission.aggregation import DEFAULT_PICKUP_THRESHOLD
from core.zones import ZoneRepository, ZoneService
from utils.config import Config


@dataclass
class Services:
    """Everything a request handler needs."""

    directory: ActorDirectory
    zones: ZoneRepository
    submissions: SubmissionRepository
    storage: EvidenceStorage
    config: Config = field(default_factory=Config)
    pickup_threshold: Decimal = DEFAULT_PICKUP_THRESHOLD
    lifecycle: SubmissionLifecycle = field(init=False)
    zone_service: ZoneService = field(init=False)

    def __post_init__(self) -> None:
        self.lifecycle = SubmissionLifecycle(self.submissions, zones=self.zones)
        self.zone_service = ZoneService(self.zones, submissions=self.submissions)

    @classmethod
    def from_config(cls, config: Config) -> "Services":
        zones = ZoneRepository(persist_path=config.data_path("zones.json"))
        return cls(
            directory=ActorDirectory(persist_path=config.data_path("actors.json"), zones=zones),
            zones=zones,
            submissions=SubmissionRepository(persist_path=config.data_path("submissions.json")),
            storage=EvidenceStorage(upload_dir=config.upload_dir, max_file_size=config.max_upload_bytes),
            config=config,
            pickup_threshold=Decimal(str(config.pickup_volume_threshold)),
        )


_build_lock = threading.Lock()


def services_for(app: FastAPI) -> Services:
    """Services for an application, built on first use from ``app.state.config``."""
    with _build_lock:
        services = getattr(app.state, "services", None)
        if services is None:
            services = Services.from_config(app.state.config)
            app.state.services = services
    return services


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the application's services."""
    return services_for(request.app)
