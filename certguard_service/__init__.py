"""
CertGuard issuance risk service.

FastAPI application that scores certificate-issuance requests before they
are persisted and minted. Run with:

    uvicorn certguard_service.main:app
"""
