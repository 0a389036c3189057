"""
Export Upload Service

Validates an uploaded CSV export and stores it under the discovery naming
convention with a JSON metadata sidecar. Uploaded objects change the
listing fingerprint, so the next data load picks them up.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import structlog

from retail_analytics.config.settings import Settings
from retail_analytics.models.records import RecordType, UploadMetadata
from retail_analytics.storage.base import ObjectStore
from retail_analytics.transformation.cleaners import build_context, clean_rows
from retail_analytics.transformation.normalizers import parse_csv, parse_date
from .batch_loader import PIPELINES
from .discovery import build_upload_key, metadata_key_for
from .exceptions import UploadRejectedError

logger = structlog.get_logger(__name__)


@dataclass
class UploadResult:
    """Where an upload was stored and how many of its rows will load"""
    key: str
    record_count: int
    rejected_count: int
    metadata: UploadMetadata


class UploadService:
    """
    Stores validated CSV exports.

    Example:
        service = UploadService(store, get_settings())
        result = await service.upload("sales", "grass_roots", "2024-01-01", "2024-01-31", "sales.csv", body)
    """

    def __init__(
        self,
        store: ObjectStore,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.settings = settings
        self._clock = clock
        self._pipelines = {p.record_type: p for p in PIPELINES}

    def _validate_type(self, data_type: str) -> RecordType:
        try:
            return RecordType(data_type)
        except ValueError:
            allowed = [t.value for t in RecordType]
            raise UploadRejectedError(f"Unknown data type '{data_type}', expected one of {allowed}") from None

    def _validate_store(self, store_id: str) -> str:
        if store_id not in self.settings.ingestion.store_ids:
            raise UploadRejectedError(
                f"Unknown store '{store_id}', expected one of {self.settings.ingestion.store_ids}"
            )
        return store_id

    def _validate_date(self, name: str, value: str) -> str:
        parsed = parse_date(value)
        if parsed is None:
            raise UploadRejectedError(f"{name} '{value}' is not a recognizable date")
        return parsed.isoformat()

    async def upload(
        self,
        data_type: str,
        store_id: str,
        start_date: str,
        end_date: str,
        filename: str,
        content: str,
    ) -> UploadResult:
        """
        Validate and store one export.

        Raises:
            UploadRejectedError: unknown type or store, missing or unparsable dates,
                an inverted date range, or no data rows
        """
        record_type = self._validate_type(data_type)
        store_id = self._validate_store(store_id)

        start_date = self._validate_date("start_date", start_date)
        end_date = self._validate_date("end_date", end_date)
        if end_date < start_date:
            raise UploadRejectedError(f"end_date {end_date} is before start_date {start_date}")

        rows = parse_csv(content)
        if not rows:
            raise UploadRejectedError("CSV contains no data rows")

        pipeline = self._pipelines[record_type]
        context = build_context(
            store_id=store_id,
            store_aliases=self.settings.ingestion.store_aliases,
            date_range=(start_date, end_date),
            segment_profile=self.settings.ingestion.segment_profile,
        )
        _, stats = clean_rows(rows, pipeline.aliases, pipeline.cleaner, context)

        uploaded_at = self._clock()
        key = build_upload_key(
            self.settings.storage.raw_prefix,
            store_id,
            record_type.value,
            start_date,
            end_date,
            uploaded_at,
        )
        metadata = UploadMetadata(
            store=store_id,
            data_type=record_type,
            start_date=start_date,
            end_date=end_date,
            uploaded_at=uploaded_at,
            filename=filename,
        )

        await self.store.put_text(key, content, content_type="text/csv")
        await self.store.put_text(
            metadata_key_for(key),
            metadata.model_dump_json(),
            content_type="application/json",
        )

        logger.info(
            "Export uploaded",
            key=key,
            record_type=record_type.value,
            store_id=store_id,
            rows=stats.total_rows,
            accepted=stats.accepted_rows,
            rejected=stats.rejected_rows,
        )

        return UploadResult(
            key=key,
            record_count=stats.accepted_rows,
            rejected_count=stats.rejected_rows,
            metadata=metadata,
        )
