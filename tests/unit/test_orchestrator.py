import asyncio

from conftest import FakeGateway, fake_extract
from screener.core.orchestrator import UNASSIGNED_POSITION, Upload, UploadOrchestrator
from screener.core.state import AppState, SessionState
from screener.errors import PersistenceError
from screener.store.local_cache import LocalCache
from screener.store.tiered import TieredStore
from screener.types import Position, User

RESUME = "张三，浙江大学计算机科学与技术专业，五年 Python 后端开发经验，熟悉 FastAPI 与 PostgreSQL。" * 2
ALICE = User(id="1700000000000", username="alice", password="pw", position="HR")


class FailingRemote:
    """Configured remote whose every call fails."""

    configured = True

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise PersistenceError("connection refused")

        return _fail


def _orchestrator(settings, facade=None, gateway=None):
    session = SessionState(id="session-a", current_user=ALICE, job_description="招聘高级后端工程师")
    store = TieredStore(facade or FailingRemote(), LocalCache(None))
    gateway = gateway or FakeGateway()
    orchestrator = UploadOrchestrator(AppState(), gateway, store, settings=settings, extractor=fake_extract)
    return orchestrator, session, gateway, store


def _upload(name: str, text: str) -> Upload:
    return Upload(name=name, content=text.encode("utf-8"), content_type="application/pdf")


def test_add_files_rejects_non_pdf(settings) -> None:
    orchestrator, session, _, _ = _orchestrator(settings)

    added = orchestrator.add_files(
        session,
        [_upload("a.pdf", RESUME), Upload(name="notes.docx", content=b"x", content_type="application/msword")],
    )

    assert [entry.name for entry in added] == ["a.pdf"]
    assert session.error == "仅支持 PDF 格式的文件。"
    assert session.file_list()[0].status == "pending"


def test_add_files_enforces_limit(settings) -> None:
    orchestrator, session, _, _ = _orchestrator(settings)
    orchestrator.add_files(session, [_upload(f"{i}.pdf", RESUME) for i in range(8)])

    added = orchestrator.add_files(session, [_upload(f"extra{i}.pdf", RESUME) for i in range(3)])

    assert added == []
    assert len(session.files) == 8
    assert session.error == "一次最多只能上传 10 个 PDF 文件。"


def test_analyze_settles_every_file_and_records_successes(settings, facade) -> None:
    orchestrator, session, gateway, _ = _orchestrator(settings, facade)
    orchestrator.add_files(
        session,
        [_upload("a.pdf", RESUME), _upload("b.pdf", "too short"), _upload("c.pdf", "FAIL " + RESUME)],
    )

    record = asyncio.run(orchestrator.analyze(session))

    statuses = {entry.name: entry.status for entry in session.file_list()}
    assert statuses == {"a.pdf": "success", "b.pdf": "error", "c.pdf": "error"}
    assert "PDF内容过少" in next(e.error for e in session.file_list() if e.name == "b.pdf")
    assert len(gateway.calls) == 2
    assert not session.is_analyzing

    assert record is not None
    assert [entry.file_name for entry in record.results] == ["a.pdf"]
    assert record.position_name == UNASSIGNED_POSITION
    assert record.created_by == ALICE.id
    assert record.assigned_to == ALICE.id
    assert orchestrator.state.history[0].id == record.id
    assert [r.id for r in facade.list_history()] == [record.id]


def test_reinvoking_skips_successful_files(settings, facade) -> None:
    orchestrator, session, gateway, _ = _orchestrator(settings, facade)
    orchestrator.add_files(session, [_upload("a.pdf", RESUME), _upload("b.pdf", "FAIL " + RESUME)])
    asyncio.run(orchestrator.analyze(session))
    assert len(gateway.calls) == 2

    record = asyncio.run(orchestrator.analyze(session))

    # Only the failed file is resubmitted; the record still carries the earlier success.
    assert len(gateway.calls) == 3
    assert [entry.file_name for entry in record.results] == ["a.pdf"]


def test_all_successful_batch_is_not_resubmitted(settings, facade) -> None:
    orchestrator, session, gateway, _ = _orchestrator(settings, facade)
    orchestrator.add_files(session, [_upload("a.pdf", RESUME)])
    asyncio.run(orchestrator.analyze(session))

    assert asyncio.run(orchestrator.analyze(session)) is None
    assert len(gateway.calls) == 1
    assert len(orchestrator.state.history) == 1


def test_no_successes_saves_no_history(settings, facade) -> None:
    orchestrator, session, _, _ = _orchestrator(settings, facade)
    orchestrator.add_files(session, [_upload("a.pdf", "FAIL " + RESUME)])

    assert asyncio.run(orchestrator.analyze(session)) is None
    assert orchestrator.state.history == []
    assert facade.list_history() == []


def test_remote_failure_keeps_record_locally(settings) -> None:
    orchestrator, session, _, store = _orchestrator(settings)
    orchestrator.add_files(session, [_upload("a.pdf", RESUME)])

    record = asyncio.run(orchestrator.analyze(session))

    assert record is not None
    assert [r.id for r in orchestrator.state.history] == [record.id]
    assert [r.id for r in store.load_history()] == [record.id]


def test_selected_position_names_the_record(settings, facade) -> None:
    orchestrator, session, _, _ = _orchestrator(settings, facade)
    orchestrator.state.positions = [Position(id="p1", name="Backend Engineer")]
    session.selected_position_id = "p1"
    orchestrator.add_files(session, [_upload("a.pdf", RESUME)])

    record = asyncio.run(orchestrator.analyze(session))

    assert record.position_name == "Backend Engineer"


def test_guards_block_batch(settings) -> None:
    orchestrator, session, gateway, _ = _orchestrator(settings)

    assert asyncio.run(orchestrator.analyze(session)) is None
    assert session.error == "请上传至少一份候选人简历 (PDF)。"

    orchestrator.add_files(session, [_upload("a.pdf", RESUME)])
    session.job_description = "   "
    assert asyncio.run(orchestrator.analyze(session)) is None
    assert session.error == "请输入招聘需求。"

    session.job_description = "招聘高级后端工程师"
    session.is_analyzing = True
    assert asyncio.run(orchestrator.analyze(session)) is None
    assert session.error == "正在分析中，请稍候。"
    assert gateway.calls == []


def test_removed_file_settlement_is_dropped(settings, facade) -> None:
    orchestrator, session, _, _ = _orchestrator(settings, facade)
    added = orchestrator.add_files(session, [_upload("a.pdf", RESUME), _upload("b.pdf", RESUME)])
    target = added[0].id

    async def extract_then_remove(data, *, min_chars=50):
        orchestrator.remove_file(session, target)
        return await fake_extract(data, min_chars=min_chars)

    orchestrator.extractor = extract_then_remove
    record = asyncio.run(orchestrator.analyze(session))

    assert [entry.name for entry in session.file_list()] == ["b.pdf"]
    assert [entry.file_name for entry in record.results] == ["b.pdf"]


def test_two_of_three_successes_make_one_record(settings, facade) -> None:
    orchestrator, session, _, _ = _orchestrator(settings, facade)
    orchestrator.add_files(
        session,
        [_upload("a.pdf", RESUME), _upload("b.pdf", RESUME), _upload("c.pdf", "FAIL " + RESUME)],
    )

    record = asyncio.run(orchestrator.analyze(session))

    statuses = [entry.status for entry in session.file_list()]
    assert statuses.count("success") + statuses.count("error") == 3
    assert [entry.file_name for entry in record.results] == ["a.pdf", "b.pdf"]
    assert len(facade.list_history()) == 1
