from __future__ import annotations

import logging
from datetime import date

from psycopg import Connection

from ..domain import NewVehicle
from ..errors import NotFoundError, ValidationError
from ..repositories.client_repo import ClientRepository
from ..repositories.organization_repo import OrganizationRepository
from ..repositories.vehicle_repo import VehicleRepository

log = logging.getLogger(__name__)


class CustomerService:
    """Clients, fleet organizations and the vehicles they own."""

    def __init__(
        self,
        *,
        client_repo: ClientRepository,
        organization_repo: OrganizationRepository,
        vehicle_repo: VehicleRepository,
    ) -> None:
        self.client_repo = client_repo
        self.organization_repo = organization_repo
        self.vehicle_repo = vehicle_repo

    def create_vehicle(
        self,
        conn: Connection,
        vehicle: NewVehicle,
        *,
        organization_id: int | None = None,
        client_id: int | None = None,
    ) -> dict:
        if (organization_id is None) == (client_id is None):
            raise ValidationError("Vehicle must belong to exactly one client or organization")
        if organization_id is not None and not self.organization_repo.exists(conn, organization_id):
            raise NotFoundError("Organization not found")
        if client_id is not None and not self.client_repo.exists(conn, client_id):
            raise NotFoundError("Client not found")

        return self.vehicle_repo.create(
            conn,
            registration_number=vehicle.registration_number,
            make_model=vehicle.make_model,
            vehicle_type=vehicle.vehicle_type,
            year=vehicle.year or date.today().year,
            color=vehicle.color,
            vin=vehicle.vin,
            organization_id=organization_id,
            client_id=client_id,
        )

    def create_client_with_vehicles(
        self,
        conn: Connection,
        *,
        name: str,
        phone: str | None,
        email: str | None,
        address: str | None,
        vehicles: list[NewVehicle],
    ) -> dict:
        if not name.strip():
            raise ValidationError("Client name is required")
        if not vehicles:
            raise ValidationError("At least one vehicle is required")

        client = self.client_repo.create(conn, name=name.strip(), email=email, phone=phone, address=address)
        created = [self.create_vehicle(conn, v, client_id=int(client["id"])) for v in vehicles]
        log.info("Client #%s created with %d vehicle(s)", client["id"], len(created))
        return {"client": client, "vehicles": created}

    def create_organization_with_vehicles(
        self,
        conn: Connection,
        *,
        name: str,
        contact_person: str | None,
        phone: str | None,
        email: str | None,
        address: str | None,
        vehicles: list[NewVehicle],
    ) -> dict:
        if not name.strip():
            raise ValidationError("Organization name is required")
        if not vehicles:
            raise ValidationError("At least one vehicle is required")

        organization = self.organization_repo.create(
            conn,
            name=name.strip(),
            contact_person=contact_person,
            email=email,
            phone=phone,
            address=address,
        )
        created = [self.create_vehicle(conn, v, organization_id=int(organization["id"])) for v in vehicles]
        log.info("Organization #%s created with %d vehicle(s)", organization["id"], len(created))
        return {"organization": organization, "vehicles": created}

    def delete_vehicle(self, conn: Connection, vehicle_id: int) -> None:
        if self.vehicle_repo.has_services(conn, vehicle_id):
            raise ValidationError("Cannot delete vehicle with existing service records")
        if not self.vehicle_repo.delete(conn, vehicle_id):
            raise NotFoundError("Vehicle not found")
