"""`op` 命令行客户端测试（替换 subprocess.run）。"""

import json
import subprocess

import pytest

from opbookmarks.store import DeserializationError, OpCliClient, TransportError
from opbookmarks.store import op_cli


ACCOUNT_LIST = [
    {"url": "my.1password.com", "email": "me@example.com", "user_uuid": "U1", "account_uuid": "ACC1"},
    {"url": "team.1password.com", "email": "me@work.com", "user_uuid": "U2", "account_uuid": "ACC2"},
]

ACCOUNT_DETAILS = {
    "U1": {"id": "ACC1", "name": "Personal", "domain": "my", "type": "INDIVIDUAL",
           "state": "ACTIVE", "created_at": "2021-01-04T09:00:00Z"},
    "U2": {"id": "ACC2", "name": "Work", "domain": "team", "type": "BUSINESS",
           "state": "ACTIVE", "created_at": "2020-11-20T15:30:00Z"},
}

VAULT_LIST = [{"id": "V1", "name": "Private"}, {"id": "V2", "name": "Shared"}]

VAULT_DETAILS = {
    "V1": {"id": "V1", "name": "Private", "attribute_version": 1, "content_version": 31,
           "items": 2, "type": "PERSONAL", "created_at": "2021-01-04T09:00:00Z",
           "updated_at": "2022-06-01T10:00:00Z"},
    "V2": {"id": "V2", "name": "Shared", "attribute_version": 2, "content_version": 7,
           "items": 1, "type": "USER_CREATED", "created_at": "2021-02-04T09:00:00Z",
           "updated_at": "2022-05-01T10:00:00Z"},
}

ITEM_LIST = [
    {"id": "I1", "title": "GitHub", "tags": ["dev"], "version": 4,
     "vault": {"id": "V1", "name": "Private"}, "category": "LOGIN",
     "last_edited_by": "U1", "created_at": "2021-03-01T10:00:00Z",
     "updated_at": "2022-04-01T10:00:00Z",
     "urls": [{"primary": True, "href": "https://github.com"}]},
    {"id": "I2", "title": "Wifi", "version": 1,
     "vault": {"id": "V1", "name": "Private"}, "category": "WIRELESS_ROUTER",
     "last_edited_by": "U1", "created_at": "2021-03-01T10:00:00Z",
     "updated_at": "2021-03-01T10:00:00Z"},
]


class FakeOp:
    """按命令参数返回预设输出的 subprocess.run 替身。"""

    def __init__(self, responses: dict):
        self.responses = responses
        self.commands = []

    def __call__(self, cmd, capture_output=True, text=True, timeout=None):
        self.commands.append(cmd)
        key = tuple(cmd[3:])
        if key not in self.responses:
            return subprocess.CompletedProcess(cmd, 1, "", f"[ERROR] unknown command {key}")
        response = self.responses[key]
        if isinstance(response, subprocess.CompletedProcess):
            return response
        return subprocess.CompletedProcess(cmd, 0, json.dumps(response), "")


def install(monkeypatch, responses: dict) -> FakeOp:
    fake = FakeOp(responses)
    monkeypatch.setattr(op_cli.subprocess, "run", fake)
    return fake


def account_responses() -> dict:
    return {
        ("account", "list"): ACCOUNT_LIST,
        ("--account", "U1", "account", "get"): ACCOUNT_DETAILS["U1"],
        ("--account", "U2", "account", "get"): ACCOUNT_DETAILS["U2"],
    }


def test_list_all_accounts_enriches_details(monkeypatch):
    """不指定过滤时列出全部账户，并逐个 `account get` 补全详情。"""
    fake = install(monkeypatch, account_responses())

    accounts = OpCliClient().list_accounts(set())

    assert [a.id for a in accounts] == ["ACC1", "ACC2"]
    assert accounts[1].name == "Work"
    assert accounts[1].created_at.year == 2020
    assert fake.commands[0] == ["op", "--format", "json", "account", "list"]
    assert fake.commands[1] == ["op", "--format", "json", "--account", "U1", "account", "get"]


def test_account_filter_matches_user_or_account_uuid(monkeypatch, caplog):
    """过滤支持 user_uuid 或 account_uuid；找不到的 id 只记录警告。"""
    install(monkeypatch, account_responses())

    accounts = OpCliClient().list_accounts({"ACC2", "MISSING"})

    assert [a.id for a in accounts] == ["ACC2"]
    assert "MISSING" in caplog.text

    assert [a.id for a in OpCliClient().list_accounts({"U1"})] == ["ACC1"]


def test_list_vaults_uses_vault_get_for_revisions(monkeypatch):
    """列保险库后逐个 `vault get` 取得内容版本。"""
    fake = install(monkeypatch, {
        ("--account", "ACC1", "vault", "list"): VAULT_LIST,
        ("--account", "ACC1", "vault", "get", "V1"): VAULT_DETAILS["V1"],
        ("--account", "ACC1", "vault", "get", "V2"): VAULT_DETAILS["V2"],
    })

    vaults = OpCliClient().list_vaults("ACC1")

    assert [(v.id, v.content_version) for v in vaults] == [("V1", 31), ("V2", 7)]
    assert vaults[1].attribute_version == 2
    assert len(fake.commands) == 3


def test_list_items_parses_urls(monkeypatch):
    """条目列表解析 URL、标签与保险库引用。"""
    fake = install(monkeypatch, {
        ("--account", "ACC1", "item", "list", "--vault", "V1"): ITEM_LIST,
    })

    items = OpCliClient(binary="/usr/local/bin/op").list_items("ACC1", "V1")

    assert [i.id for i in items] == ["I1", "I2"]
    assert [u.href for u in items[0].urls] == ["https://github.com"]
    assert items[1].urls == []
    assert items[0].vault.id == "V1"
    assert fake.commands[0][0] == "/usr/local/bin/op"


def test_missing_binary_is_transport_error(monkeypatch):
    """找不到 op 可执行文件时抛出 TransportError。"""
    def raise_not_found(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(op_cli.subprocess, "run", raise_not_found)

    with pytest.raises(TransportError, match="not found"):
        OpCliClient().list_accounts(set())


def test_timeout_is_transport_error(monkeypatch):
    """配置了超时且超时发生时抛出 TransportError。"""
    def raise_timeout(cmd, timeout=None, **kwargs):
        raise subprocess.TimeoutExpired(cmd, timeout)

    monkeypatch.setattr(op_cli.subprocess, "run", raise_timeout)

    with pytest.raises(TransportError, match="timed out"):
        OpCliClient(timeout=2.0).list_vaults("ACC1")


def test_stderr_output_is_transport_error(monkeypatch):
    """op 向 stderr 输出内容（即使退出码为 0）视为失败。"""
    install(monkeypatch, {
        ("account", "list"): subprocess.CompletedProcess([], 0, "[]", "[ERROR] not signed in"),
    })

    with pytest.raises(TransportError, match="not signed in"):
        OpCliClient().list_accounts(set())


def test_nonzero_exit_is_transport_error(monkeypatch):
    """非零退出码视为失败。"""
    install(monkeypatch, {})

    with pytest.raises(TransportError):
        OpCliClient().list_items("ACC1", "V1")


def test_invalid_json_is_deserialization_error(monkeypatch):
    """stdout 不是合法 JSON 时抛出 DeserializationError。"""
    install(monkeypatch, {
        ("--account", "ACC1", "vault", "list"): subprocess.CompletedProcess([], 0, "<html>", ""),
    })

    with pytest.raises(DeserializationError):
        OpCliClient().list_vaults("ACC1")


def test_unexpected_shape_is_deserialization_error(monkeypatch):
    """缺少必需字段（如 content_version）时抛出 DeserializationError。"""
    install(monkeypatch, {
        ("--account", "ACC1", "vault", "list"): VAULT_LIST[:1],
        ("--account", "ACC1", "vault", "get", "V1"): {"id": "V1", "name": "Private"},
        ("--account", "ACC1", "item", "list", "--vault", "V1"): {"not": "a list"},
    })

    with pytest.raises(DeserializationError):
        OpCliClient().list_vaults("ACC1")
    with pytest.raises(DeserializationError):
        OpCliClient().list_items("ACC1", "V1")


def test_account_detail_failure_drops_only_that_account(monkeypatch, caplog):
    """某个账户的 `account get` 失败只跳过该账户，其余账户照常返回。"""
    responses = account_responses()
    responses[("--account", "U2", "account", "get")] = subprocess.CompletedProcess(
        [], 1, "", "[ERROR] account is not signed in"
    )
    install(monkeypatch, responses)

    accounts = OpCliClient().list_accounts(set())

    assert [a.id for a in accounts] == ["ACC1"]
    assert "U2" in caplog.text


def test_account_detail_failure_does_not_abort_export(monkeypatch, tmp_path):
    """账户详情失败时导出周期继续，健康账户照常写出文件。"""
    from opbookmarks.config import Settings
    from opbookmarks.export import ExportManager, cache

    responses = account_responses()
    responses[("--account", "U2", "account", "get")] = subprocess.CompletedProcess(
        [], 1, "", "[ERROR] account is not signed in"
    )
    responses.update({
        ("--account", "ACC1", "vault", "list"): VAULT_LIST[:1],
        ("--account", "ACC1", "vault", "get", "V1"): VAULT_DETAILS["V1"],
        ("--account", "ACC1", "item", "list", "--vault", "V1"): ITEM_LIST,
    })
    install(monkeypatch, responses)
    settings = Settings(export_path=tmp_path)

    stats = ExportManager(OpCliClient(), settings).run_cycle()

    assert stats["accounts"] == 1
    assert stats["items_written"] == 2
    assert (tmp_path / "ACC1" / "V1_I1.onepassword-item-metadata").exists()
    assert cache.load(settings.cache_path).account_ids() == ["ACC1"]


def test_account_list_failure_is_still_fatal(monkeypatch):
    """`account list` 本身失败仍然抛出 TransportError。"""
    install(monkeypatch, {
        ("account", "list"): subprocess.CompletedProcess([], 1, "", "[ERROR] op daemon unavailable"),
    })

    with pytest.raises(TransportError):
        OpCliClient().list_accounts(set())
