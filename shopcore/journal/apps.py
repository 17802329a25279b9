"""
Shop Core — Journal App Configuration
=======================================
This app:
- Persists published notifications, in order, immutably
- Maintains hash-chain integrity across entries

This app does NOT:
- Interpret notification meaning
- Write ledger state
- Dispatch notifications (that is shopcore.events responsibility)
"""

from django.apps import AppConfig


class JournalConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "shopcore.journal"
    label = "journal"
    verbose_name = "Shop Ledger Journal"
