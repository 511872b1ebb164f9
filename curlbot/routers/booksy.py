from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from curlbot.services.booksy_service import BookingCatalog, get_booking_catalog

router = APIRouter(prefix="/booksy", tags=["booksy"])

DEFAULT_APPOINTMENT_SERVICE = "Curly Adventure"


@router.get("/services")
async def services(catalog: BookingCatalog = Depends(get_booking_catalog)):
    return await catalog.get_services()


@router.get("/services/search")
async def search_services(
    q: Optional[str] = Query(default=None),
    catalog: BookingCatalog = Depends(get_booking_catalog),
):
    return await catalog.search_services(q)


@router.get("/services/recommendations")
async def recommendations(
    client_type: Optional[str] = Query(default=None, alias="type"),
    catalog: BookingCatalog = Depends(get_booking_catalog),
):
    return await catalog.get_recommendations(client_type)


@router.get("/booking")
async def booking(
    service: Optional[str] = Query(default=None),
    catalog: BookingCatalog = Depends(get_booking_catalog),
):
    if not service or not service.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Service name required. Use ?service=ServiceName",
        )
    return await catalog.get_booking_instructions(service.strip())


@router.get("/appointments")
async def appointments(
    service: str = Query(default=DEFAULT_APPOINTMENT_SERVICE),
    catalog: BookingCatalog = Depends(get_booking_catalog),
):
    result = await catalog.get_appointments(service)
    if result.get("error"):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=result)
    return result


@router.get("/business")
async def business(catalog: BookingCatalog = Depends(get_booking_catalog)):
    return await catalog.get_business_info()


@router.post("/refresh")
async def refresh(catalog: BookingCatalog = Depends(get_booking_catalog)):
    return await catalog.refresh()


@router.get("/health")
async def health(catalog: BookingCatalog = Depends(get_booking_catalog)):
    return catalog.health()
