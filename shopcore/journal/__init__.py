"""
Shop Core Journal
===================
Append-only, hash-chained record of published ledger notifications.
Django app; import persistence helpers only after Django is configured.
"""
