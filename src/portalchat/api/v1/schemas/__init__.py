# API v1 request/response schemas.
# Created: 2026-10-12
