"""Read-only access to routes, vans and driver assignments."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from vantrack.core.errors import AssignmentError
from vantrack.core.fleet import Assignment, Route, Stop, Van
from vantrack.models import tables

logger = logging.getLogger(__name__)


def _to_route(row: tables.Route) -> Route:
    return Route(
        id=row.id,
        name=row.name,
        stops=tuple(Stop(id=s.id, name=s.name, lat=s.lat, lng=s.lng) for s in row.stops),
    )


class FleetRepository:
    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    async def list_routes(self) -> list[Route]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(tables.Route).options(selectinload(tables.Route.stops)).order_by(tables.Route.name)
            )
            return [_to_route(r) for r in result.scalars().all()]

    async def get_route(self, route_id: str) -> Route | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(tables.Route)
                .where(tables.Route.id == route_id)
                .options(selectinload(tables.Route.stops))
            )
            row = result.scalar_one_or_none()
            return _to_route(row) if row else None

    async def get_assignment(self, driver_id: str) -> Assignment:
        """Resolve driver -> van -> route.

        Raises AssignmentError when any link is missing; a driver must not
        start a trip without a complete assignment.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(tables.Driver)
                .where(tables.Driver.id == driver_id)
                .options(
                    selectinload(tables.Driver.van)
                    .selectinload(tables.Van.route)
                    .selectinload(tables.Route.stops)
                )
            )
            driver = result.scalar_one_or_none()

            if driver is None:
                raise AssignmentError(f"Driver {driver_id} is not registered. Contact an admin.")
            if driver.van is None:
                raise AssignmentError("No van is assigned to you. Contact an admin.")
            van_row = driver.van
            if van_row.route is None:
                raise AssignmentError(
                    f"Van {van_row.van_number} has no route assigned. Contact an admin."
                )
            route = _to_route(van_row.route)
            if not route.stops:
                raise AssignmentError(f"Route {route.name} has no stops. Contact an admin.")

            van = Van(
                id=van_row.id,
                van_number=van_row.van_number,
                capacity=van_row.capacity,
                route_id=van_row.route_id,
            )
            logger.debug("Driver %s -> van %s -> route %s", driver_id, van.id, route.id)
            return Assignment(driver_id=driver.id, van=van, route=route, driver_name=driver.name)
