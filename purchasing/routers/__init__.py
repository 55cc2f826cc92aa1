"""Routers package — HTTP endpoint definitions.

Files:
  auth.py         — Session login (/api/auth/*)
  po_template.py  — PO template pipeline (/api/po-template/*)
  v1/             — Versioned API routes (/api/v1/*)
"""
