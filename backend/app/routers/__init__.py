# API Routers
from app.routers import rooms, guests, reservations, consumptions, payments, audit_logs

__all__ = ['rooms', 'guests', 'reservations', 'consumptions', 'payments', 'audit_logs']
