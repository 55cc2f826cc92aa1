"""Services package — all business logic lives here, never in routers.

Files:
  template_parser.py      — Input sheet -> ParsedOrder list (openpyxl)
  template_validator.py   — Structural quick checks and per-row validation report
  sheet_extractor.py      — Copy a workbook keeping only 갑지/을지 (or dropping Input)
  excel_pdf.py            — Render workbook sheets to PDF (reportlab)
  order_pdf.py            — Purchase order PDF built from database records
  email_service.py        — SMTP dispatch of order documents, test mode
  po_template_service.py  — Upload intake, save with Mock DB fallback, full pipeline
  order_service.py        — Status transitions, order PDFs, vendor email, draft batch
  attachment.py           — Resolve attachment bytes (Base64 rows or disk)
  dashboard.py            — Dashboard and project aggregates
  auth.py                 — Credential check for session login
  filenames.py            — Upload filename repair and upload directory paths

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
