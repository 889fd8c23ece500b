from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from screener.config import Settings, get_settings
from screener.core.extractor import extract_pdf_text_async
from screener.core.state import AppState, SessionState, file_id, now_ms, timestamp_id
from screener.errors import ScreenerError
from screener.llm.gateway import AnalysisGateway
from screener.llm.prompts import build_conversation
from screener.store.tiered import TieredStore
from screener.types import CandidateType, HistoryEntry, HistoryRecord, UploadedFile

logger = logging.getLogger(__name__)

Extractor = Callable[..., Awaitable[str]]

UNASSIGNED_POSITION = "未指定岗位"


@dataclass(frozen=True, slots=True)
class Upload:
    name: str
    content: bytes
    content_type: str | None = None

    @property
    def is_pdf(self) -> bool:
        if self.content_type:
            return self.content_type == "application/pdf"
        return self.name.lower().endswith(".pdf")


@dataclass(frozen=True, slots=True)
class BatchInputs:
    job_description: str
    special_requirements: str
    candidate_type: CandidateType
    position_name: str


class UploadOrchestrator:
    def __init__(
        self,
        state: AppState,
        gateway: AnalysisGateway,
        store: TieredStore,
        *,
        settings: Settings | None = None,
        extractor: Extractor = extract_pdf_text_async,
    ):
        self.state = state
        self.gateway = gateway
        self.store = store
        self.settings = settings or get_settings()
        self.extractor = extractor

    def add_files(self, session: SessionState, uploads: Iterable[Upload]) -> list[UploadedFile]:
        session.error = None
        uploads = list(uploads)
        pdfs = [upload for upload in uploads if upload.is_pdf]
        if len(pdfs) != len(uploads):
            session.error = "仅支持 PDF 格式的文件。"

        limit = self.settings.max_upload_files
        if len(session.files) + len(pdfs) > limit:
            session.error = f"一次最多只能上传 {limit} 个 PDF 文件。"
            return []

        added: list[UploadedFile] = []
        for upload in pdfs:
            entry = UploadedFile(id=file_id(), content=upload.content, name=upload.name)
            session.files[entry.id] = entry
            added.append(entry)
        return added

    def remove_file(self, session: SessionState, target_id: str) -> bool:
        # An in-flight analysis keeps running; its settlement finds no entry and is dropped.
        return session.files.pop(target_id, None) is not None

    async def analyze(self, session: SessionState) -> HistoryRecord | None:
        """Analyze every file not yet successful and record the batch.

        Returns the history record created for the batch, or None when no
        file succeeded or the batch could not start.
        """
        if session.is_analyzing:
            session.error = "正在分析中，请稍候。"
            return None
        if not session.job_description.strip():
            session.error = "请输入招聘需求。"
            return None
        if not session.files:
            session.error = "请上传至少一份候选人简历 (PDF)。"
            return None

        session.error = None
        inputs = BatchInputs(
            job_description=session.job_description,
            special_requirements=session.special_requirements,
            candidate_type=session.candidate_type,
            position_name=self.state.position_name(session.selected_position_id) or UNASSIGNED_POSITION,
        )
        submitted = [entry for entry in session.file_list() if entry.status != "success"]
        if not submitted:
            logger.info("All %d files already analyzed; nothing to submit", len(session.files))
            return None
        for entry in submitted:
            session.update_file(entry.id, status="analyzing", error=None)

        session.is_analyzing = True
        try:
            tasks = {
                entry.id: asyncio.create_task(
                    self._analyze_file(session, entry, inputs), name=f"analyze-{entry.id}"
                )
                for entry in submitted
            }
            await asyncio.gather(*tasks.values())
        finally:
            session.is_analyzing = False

        return self._save_history(session, inputs)

    async def _analyze_file(self, session: SessionState, entry: UploadedFile, inputs: BatchInputs) -> None:
        try:
            text = await self.extractor(entry.content, min_chars=self.settings.min_resume_chars)
            messages = build_conversation(
                job_description=inputs.job_description,
                special_requirements=inputs.special_requirements,
                candidate_type=inputs.candidate_type,
                resume_text=text,
            )
            result = await self.gateway.analyze(messages, temperature=self.settings.llm_temperature)
        except ScreenerError as exc:
            logger.warning("Analysis failed file=%s error=%s", entry.name, exc)
            session.update_file(entry.id, status="error", error=str(exc) or "分析失败")
            return
        except Exception as exc:
            logger.exception("Unexpected analysis failure file=%s", entry.name)
            session.update_file(entry.id, status="error", error=str(exc) or "分析失败")
            return

        session.update_file(entry.id, status="success", result=result, error=None)

    def _save_history(self, session: SessionState, inputs: BatchInputs) -> HistoryRecord | None:
        # Current state, not the submission snapshot: earlier successes count too.
        results = [
            HistoryEntry(file_name=entry.name, result=entry.result)
            for entry in session.file_list()
            if entry.status == "success" and entry.result is not None
        ]
        if not results:
            logger.info("No successful results; history not saved")
            return None

        user_id = session.current_user.id if session.current_user else None
        record = HistoryRecord(
            id=timestamp_id(),
            timestamp=now_ms(),
            position_name=inputs.position_name,
            job_description=inputs.job_description,
            special_requirements=inputs.special_requirements,
            results=results,
            created_by=user_id,
            assigned_to=user_id,
        )
        self.state.history = self.store.create_history(record)
        logger.info("Saved history record id=%s results=%d", record.id, len(results))
        return record
