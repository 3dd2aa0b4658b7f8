from empathyconnect.db.models.crisis_alert import CrisisAlert

__all__ = [
    "CrisisAlert",
]
