from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from movie_booking.api.deps import get_ledger
from movie_booking.db.session import get_db_session
from movie_booking.schemas.catalog import CatalogDocument, CatalogImportSummary
from movie_booking.services.catalog_io import export_catalog, import_catalog
from movie_booking.services.ledger import AvailabilityLedger


router = APIRouter(prefix="/catalog")


@router.post("/", response_model=CatalogImportSummary)
async def import_catalog_document(
        document: CatalogDocument,
        db: AsyncSession = Depends(get_db_session),
        ledger: AvailabilityLedger = Depends(get_ledger)):
    return await import_catalog(db, document, ledger=ledger)


@router.get("/", response_model=CatalogDocument)
async def export_catalog_document(db: AsyncSession = Depends(get_db_session)):
    return await export_catalog(db)
