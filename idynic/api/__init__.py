"""API router for v1 endpoints."""

from fastapi import APIRouter

from idynic.api import identity, opportunities, tailored_profiles

router = APIRouter()

# Identity graph and skill clusters
router.include_router(identity.router, prefix="/identity", tags=["identity"])

# Match scoring and tailored profile generation
router.include_router(opportunities.router, prefix="/opportunities", tags=["opportunities"])

# Tailored profile edits
router.include_router(tailored_profiles.router, prefix="/tailored-profiles", tags=["tailored_profiles"])
