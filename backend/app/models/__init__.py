# Ontology Models
from app.models.ontology import (
    Guest, Room, Reservation, ProductCategory, Product,
    Consumption, Payment, ActivityLog, SystemLog
)

__all__ = [
    'Guest', 'Room', 'Reservation', 'ProductCategory', 'Product',
    'Consumption', 'Payment', 'ActivityLog', 'SystemLog'
]
