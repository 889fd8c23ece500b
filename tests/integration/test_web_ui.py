from fastapi.testclient import TestClient

from conftest import analysis_payload
from screener.api.app import create_app
from screener.types import AnalysisResult, HistoryEntry, HistoryRecord


def _client(settings, controller) -> TestClient:
    return TestClient(create_app(settings, controller=controller))


def test_login_view_until_authenticated(settings, controller) -> None:
    client = _client(settings, controller)

    page = client.get("/")
    assert page.status_code == 200
    assert 'action="/web/login"' in page.text
    assert "退出登录" not in page.text

    failed = client.post("/web/login", data={"username": "admin", "password": "nope"})
    assert failed.status_code == 401
    assert "用户名或密码错误" in failed.text

    shell = client.post("/web/login", data={"username": "admin", "password": "admin"})
    assert shell.status_code == 200
    assert "权限管理" in shell.text
    assert "开始分析" in shell.text


def test_member_only_sees_results_page(settings, controller) -> None:
    controller.add_user(username="alice", password="pw", position="HR")
    client = _client(settings, controller)
    client.post("/web/login", data={"username": "alice", "password": "pw"})

    page = client.get("/", params={"page": "permissions"})

    assert "筛选结果" in page.text
    assert "权限管理" not in page.text
    assert "暂无记录" in page.text


def test_member_cannot_manage_positions(settings, controller) -> None:
    controller.add_user(username="alice", password="pw")
    client = _client(settings, controller)
    client.post("/web/login", data={"username": "alice", "password": "pw"})

    page = client.post("/web/positions", data={"name": "Backend Engineer"})

    assert "需要管理员权限" in page.text
    assert controller.state.positions == []


def test_admin_manages_positions_and_users(settings, controller) -> None:
    client = _client(settings, controller)
    client.post("/web/login", data={"username": "admin", "password": "admin"})

    page = client.post("/web/positions", data={"name": "Backend Engineer", "job_description": "Python"})
    assert "Backend Engineer" in page.text

    page = client.post("/web/users", data={"username": "bob", "password": "pw", "position": "面试官"})
    assert "bob" in page.text

    page = client.post("/web/users", data={"username": "bob", "password": "pw"})
    assert "用户名已存在" in page.text


def test_history_shows_hard_requirement_warning(settings, controller) -> None:
    result = AnalysisResult.model_validate(
        analysis_payload(matchScore=55, hardRequirementsMet=False, hardRequirementsNote="非985院校")
    )
    record = HistoryRecord(
        id="1700000000001",
        timestamp=1700000000001,
        position_name="Backend Engineer",
        job_description="JD",
        results=[HistoryEntry(file_name="zhangsan.pdf", result=result)],
        assigned_to="admin",
        created_by="admin",
    )
    controller.state.history = controller.store.create_history(record)
    client = _client(settings, controller)
    client.post("/web/login", data={"username": "admin", "password": "admin"})

    page = client.get("/", params={"page": "history"})

    assert "⚠️ 硬性门槛不符：非985院校" in page.text
    assert "zhangsan.pdf" in page.text
    assert '<span class="score-low">55 分</span>' in page.text
