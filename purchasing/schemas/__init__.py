"""Pydantic schemas package.

Folder intent:
  common.py       — CamelModel base + HealthResponse (all schemas inherit CamelModel)
  po_template.py  — Parsed orders, validation reports and /api/po-template/* payloads
  order.py        — Purchase order read models, status/email requests, draft batch result
  email.py        — Email options, attachments and delivery results
  dashboard.py    — Dashboard totals and per-project statistics
  auth.py         — Login request and public user shape
"""
