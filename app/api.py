"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from app.schemas import (
    BatteryStatusOut,
    DateRangeRequest,
    DocumentIngestResponse,
    DocumentPageResponse,
    ReadingOut,
    SelectTagRequest,
    SeriesResponse,
    SessionStateResponse,
    StatisticsOut,
    TagListResponse,
    WindowOut,
)
from datastore.document_store import (
    DocumentFilter,
    MockDocumentStore,
    PaginationCursor,
    build_default_store,
)
from datastore.errors import InvalidCursorError, StoreUnavailableError
from models.documents import DailyDocument
from models.records import DateRange
from services.export import EmptyExportError, export_all_rows, export_series_rows, rows_to_csv
from services.parser import recent_readings
from services.pipeline import SensorDataService, build_default_service
from services.session import DisplaySession, build_default_session
from settings import get_settings

router = APIRouter()


def get_service() -> SensorDataService:
    return build_default_service()


def get_store() -> MockDocumentStore:
    return build_default_store()


def get_session() -> DisplaySession:
    return build_default_session()


def _parse_range(start: Optional[str], end: Optional[str]) -> Optional[DateRange]:
    if start is None and end is None:
        return None
    settings = get_settings()
    try:
        return DateRange(
            start=start or settings.default_start_day,
            end=end or settings.default_end_day,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _unavailable(exc: StoreUnavailableError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


def _csv_response(body: str, filename: str) -> PlainTextResponse:
    return PlainTextResponse(
        body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _session_state(session: DisplaySession) -> SessionStateResponse:
    snapshot = session.snapshot
    return SessionStateResponse(
        generation=snapshot.generation,
        tag_ids=snapshot.tag_ids,
        selected_tag=snapshot.selected_tag,
        calibrated=session.calibrator.calibrated,
        window=WindowOut.from_domain(snapshot.window) if snapshot.window else None,
        reading_count=len(snapshot.readings),
        skipped_count=snapshot.skipped_count,
        has_data=snapshot.has_data,
        statistics=StatisticsOut.from_domain(snapshot.statistics),
        battery=BatteryStatusOut.from_domain(snapshot.battery),
        message=snapshot.message,
        last_error=session.last_error,
    )


@router.get("/tags", response_model=TagListResponse, summary="List known sensor tags.")
async def list_tags(service: SensorDataService = Depends(get_service)) -> TagListResponse:
    try:
        return TagListResponse(tag_ids=service.list_tag_ids())
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc


@router.post(
    "/documents",
    status_code=status.HTTP_201_CREATED,
    response_model=DocumentIngestResponse,
    summary="Store daily measurement documents.",
)
async def ingest_documents(
    documents: List[DailyDocument] = Body(..., description="Daily documents to store."),
    store: MockDocumentStore = Depends(get_store),
) -> DocumentIngestResponse:
    if not documents:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No documents supplied.",
        )
    try:
        store.put_documents(documents)
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return DocumentIngestResponse(
        document_count=len(documents),
        doc_ids=[document.doc_id for document in documents],
    )


@router.get(
    "/documents",
    response_model=DocumentPageResponse,
    summary="Page through daily documents, newest day first.",
)
async def list_documents(
    tag_id: Optional[str] = Query(None),
    start: Optional[str] = Query(None, description="First day, YYYY-MM-DD."),
    end: Optional[str] = Query(None, description="Last day, YYYY-MM-DD."),
    cursor: Optional[str] = Query(None, description="Token returned by the previous page."),
    page_size: Optional[int] = Query(None, ge=1, le=500),
    service: SensorDataService = Depends(get_service),
) -> DocumentPageResponse:
    date_range = _parse_range(start, end)
    try:
        start_after = PaginationCursor.decode(cursor) if cursor else None
        page = service.walker.fetch_page(
            DocumentFilter(tag_id=tag_id, date_range=date_range),
            start_after,
            page_size=page_size,
        )
    except InvalidCursorError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return DocumentPageResponse(
        documents=page.documents,
        readings=[
            ReadingOut.from_domain(reading)
            for document in page.documents
            for reading in recent_readings(document)
        ],
        next_cursor=page.next_cursor.encode() if page.next_cursor else None,
        has_more=page.has_more,
    )


@router.get(
    "/tags/{tag_id}/series",
    response_model=SeriesResponse,
    summary="Sorted readings and statistics for a tag.",
)
async def get_tag_series(
    tag_id: str,
    start: Optional[str] = Query(None, description="First day, YYYY-MM-DD."),
    end: Optional[str] = Query(None, description="Last day, YYYY-MM-DD."),
    service: SensorDataService = Depends(get_service),
) -> SeriesResponse:
    date_range = _parse_range(start, end)
    try:
        loaded = service.load_series(tag_id, date_range)
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return SeriesResponse(
        tag_id=tag_id,
        start=date_range.start if date_range else None,
        end=date_range.end if date_range else None,
        readings=[ReadingOut.from_domain(reading) for reading in loaded.readings],
        statistics=StatisticsOut.from_domain(service.get_statistics(loaded.readings)),
        battery=BatteryStatusOut.from_domain(loaded.battery),
        document_count=loaded.document_count,
        skipped_count=len(loaded.issues),
    )


@router.get(
    "/tags/{tag_id}/statistics",
    response_model=StatisticsOut,
    summary="Summary statistics for a tag.",
)
async def get_tag_statistics(
    tag_id: str,
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    service: SensorDataService = Depends(get_service),
) -> StatisticsOut:
    date_range = _parse_range(start, end)
    try:
        series = service.get_series(tag_id, date_range)
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return StatisticsOut.from_domain(service.get_statistics(series))


@router.get(
    "/tags/{tag_id}/battery",
    response_model=BatteryStatusOut,
    summary="Most recently reported battery status for a tag.",
)
async def get_tag_battery(
    tag_id: str,
    service: SensorDataService = Depends(get_service),
) -> BatteryStatusOut:
    try:
        return BatteryStatusOut.from_domain(service.get_latest_battery_status(tag_id))
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc


@router.get("/tags/{tag_id}/export", summary="CSV export of a tag's readings.")
async def export_tag(
    tag_id: str,
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    service: SensorDataService = Depends(get_service),
) -> PlainTextResponse:
    date_range = _parse_range(start, end)
    try:
        body = rows_to_csv(export_series_rows(service.get_series(tag_id, date_range)))
    except EmptyExportError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return _csv_response(body, f"sensor-data-{tag_id}.csv")


@router.get("/export", summary="CSV export of every stored reading.")
async def export_all(store: MockDocumentStore = Depends(get_store)) -> PlainTextResponse:
    try:
        body = rows_to_csv(export_all_rows(store.scan()))
    except EmptyExportError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _csv_response(body, "all-sensor-data.csv")


@router.get("/session", response_model=SessionStateResponse, summary="Current display session.")
async def get_session_state(session: DisplaySession = Depends(get_session)) -> SessionStateResponse:
    return _session_state(session)


@router.put("/session/tag", response_model=SessionStateResponse, summary="Select a sensor tag.")
async def select_session_tag(
    payload: SelectTagRequest,
    session: DisplaySession = Depends(get_session),
) -> SessionStateResponse:
    try:
        session.select_tag(payload.tag_id)
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return _session_state(session)


@router.put(
    "/session/range",
    response_model=SessionStateResponse,
    summary="Set the display date range manually.",
)
async def set_session_range(
    payload: DateRangeRequest,
    session: DisplaySession = Depends(get_session),
) -> SessionStateResponse:
    date_range = _parse_range(payload.start, payload.end)
    try:
        session.set_range(date_range)
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return _session_state(session)


@router.post(
    "/session/refresh",
    response_model=SessionStateResponse,
    summary="Reload the selected tag with the active range.",
)
async def refresh_session(session: DisplaySession = Depends(get_session)) -> SessionStateResponse:
    try:
        session.refresh()
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return _session_state(session)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
