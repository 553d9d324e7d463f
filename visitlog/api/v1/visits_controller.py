"""Visit capture and log API endpoints."""
from __future__ import annotations

import logging
import math

from advanced_alchemy.exceptions import AdvancedAlchemyError
from litestar import Controller, Request, get
from litestar.di import Provide
from sqlalchemy.exc import SQLAlchemyError

from visitlog.api.dependencies import (
    PageRequest,
    provide_geolocation_client,
    provide_page_request,
    provide_visit_repo,
)
from visitlog.api.exceptions import LogsUnavailableError
from visitlog.domain.visits.dtos import ClientInfo, ClientInfoDTO, LogsPage, LogsPageDTO
from visitlog.domain.visits.models import UNKNOWN, Visit
from visitlog.domain.visits.repositories import VisitRepository
from visitlog.domain.visits.services import record_visit
from visitlog.server.client_ip import resolve_client_ip
from visitlog.services.geolocation import GeolocationClient

logger = logging.getLogger(__name__)


class VisitController(Controller):
    """Visitor capture and paginated log endpoints.

    Mounted under the rate limited ``/api`` router.
    """

    path = "/"
    tags = ["Visits"]

    dependencies = {
        "visit_repo": Provide(provide_visit_repo),
        "geolocation_client": Provide(provide_geolocation_client, sync_to_thread=False),
        "page_request": Provide(provide_page_request, sync_to_thread=False),
    }

    @get("/client-info", return_dto=ClientInfoDTO)
    async def client_info(
        self,
        request: Request,
        visit_repo: VisitRepository,
        geolocation_client: GeolocationClient,
    ) -> ClientInfo:
        """Log the caller's visit and echo back what was recorded.

        Storage failures are logged and do not change the response.
        """
        ip = resolve_client_ip(request.scope)
        user_agent = request.headers.get("user-agent") or UNKNOWN

        location = await geolocation_client.lookup(ip)

        await record_visit(
            visit_repo,
            Visit(
                ip=ip,
                user_agent=user_agent,
                city=location.city,
                region=location.region,
                country=location.country,
                latitude=location.latitude,
                longitude=location.longitude,
            ),
        )

        return ClientInfo(ip=ip, user_agent=user_agent, location_data=location)

    @get("/logs", return_dto=LogsPageDTO)
    async def list_logs(
        self,
        visit_repo: VisitRepository,
        page_request: PageRequest,
    ) -> LogsPage:
        """List visits with pagination, most recent first."""
        try:
            visits, total = await visit_repo.list_page(page_request.page, page_request.limit)
        except (AdvancedAlchemyError, SQLAlchemyError, OSError) as exc:
            logger.exception("Error fetching logs")
            raise LogsUnavailableError() from exc

        return LogsPage(
            total_records=total,
            current_page=page_request.page,
            total_pages=math.ceil(total / page_request.limit),
            logs=[visit.to_dict() for visit in visits],
        )
