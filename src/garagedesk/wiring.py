from __future__ import annotations

from dataclasses import dataclass, field

from .config import AuthConfig
from .repositories.client_repo import ClientRepository
from .repositories.invoice_item_repo import InvoiceItemRepository
from .repositories.invoice_repo import InvoiceRepository
from .repositories.organization_repo import OrganizationRepository
from .repositories.part_repo import PartRepository
from .repositories.service_part_repo import ServicePartRepository
from .repositories.service_repo import ServiceRecordRepository
from .repositories.user_repo import UserRepository
from .repositories.vehicle_repo import VehicleRepository
from .services.auth import AuthService
from .services.customers import CustomerService
from .services.inventory_ledger import InventoryLedger
from .services.invoicing import InvoiceService
from .services.service_records import ServiceRecordService


@dataclass
class Repositories:
    client_repo: ClientRepository = field(default_factory=ClientRepository)
    organization_repo: OrganizationRepository = field(default_factory=OrganizationRepository)
    vehicle_repo: VehicleRepository = field(default_factory=VehicleRepository)
    part_repo: PartRepository = field(default_factory=PartRepository)
    service_repo: ServiceRecordRepository = field(default_factory=ServiceRecordRepository)
    service_part_repo: ServicePartRepository = field(default_factory=ServicePartRepository)
    invoice_repo: InvoiceRepository = field(default_factory=InvoiceRepository)
    invoice_item_repo: InvoiceItemRepository = field(default_factory=InvoiceItemRepository)
    user_repo: UserRepository = field(default_factory=UserRepository)


@dataclass
class Services:
    repos: Repositories
    ledger: InventoryLedger
    service_records: ServiceRecordService
    invoices: InvoiceService
    customers: CustomerService
    auth: AuthService


def build_services(repos: Repositories, auth_cfg: AuthConfig) -> Services:
    ledger = InventoryLedger(part_repo=repos.part_repo)
    return Services(
        repos=repos,
        ledger=ledger,
        service_records=ServiceRecordService(
            vehicle_repo=repos.vehicle_repo,
            service_repo=repos.service_repo,
            service_part_repo=repos.service_part_repo,
            invoice_repo=repos.invoice_repo,
            ledger=ledger,
        ),
        invoices=InvoiceService(
            service_repo=repos.service_repo,
            service_part_repo=repos.service_part_repo,
            invoice_repo=repos.invoice_repo,
            invoice_item_repo=repos.invoice_item_repo,
        ),
        customers=CustomerService(
            client_repo=repos.client_repo,
            organization_repo=repos.organization_repo,
            vehicle_repo=repos.vehicle_repo,
        ),
        auth=AuthService(user_repo=repos.user_repo, cfg=auth_cfg),
    )
