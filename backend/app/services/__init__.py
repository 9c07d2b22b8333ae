# Business Services
from app.services.audit_service import AuditService
from app.services.guest_service import GuestService
from app.services.room_service import RoomService
from app.services.reservation_service import ReservationService
from app.services.reservation_lifecycle_service import ReservationLifecycleService
from app.services.consumption_service import ConsumptionService
from app.services.billing_service import BillingService

__all__ = [
    'AuditService', 'GuestService', 'RoomService', 'ReservationService',
    'ReservationLifecycleService', 'ConsumptionService', 'BillingService'
]
