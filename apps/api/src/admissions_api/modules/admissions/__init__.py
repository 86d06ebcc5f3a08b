"""
Admissions Module

Handles the admission application lifecycle for the two applicant pools
(early years and senior entry):
1. Application submission with collision-safe application numbers
2. Review status changes, including interview scheduling
3. Interview subject settings kept in step with recorded marks
4. Interview mark entry and scoring
5. Applicant-facing tracking by application number and mobile number

API Endpoints:
- POST /admissions/applications - Submit new application
- POST /admissions/applications/lookup - Track an application
- GET /admissions/forms - Admission form settings
- /admin/admissions/... - Staff endpoints (see admin_router)

Security Features:
- Rate limiting on public submission and lookup
- Mobile numbers masked in logs
"""

from .router import router

__all__ = ["router"]
