"""v1 router package — all /api/v1/* endpoints live here.

Files:
  orders.py       — Order listing, status changes, PDF, email, draft batch
  attachments.py  — Attachment download
  dashboard.py    — Dashboard aggregates

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to purchasing/services/.
"""
