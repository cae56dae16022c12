"""
Earprint — Main API Router

Aggregates all sub-routers under a single prefix so that ``earprint.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from earprint.api import categories, collection, experiences, meta, preferences, signatures, spectrum

router = APIRouter()

router.include_router(categories.router, prefix="/categories", tags=["Categories"])
router.include_router(signatures.router, prefix="/signatures", tags=["Signatures"])
router.include_router(collection.router, prefix="/collection", tags=["Collection"])
router.include_router(spectrum.router, prefix="/spectrum", tags=["Spectrum"])
router.include_router(experiences.router, prefix="/experiences", tags=["Experiences"])
router.include_router(preferences.router, prefix="/preferences", tags=["Preferences"])
router.include_router(meta.router, prefix="/meta", tags=["Reference data"])
