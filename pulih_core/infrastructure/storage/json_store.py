import json
import os
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from pulih_core.config.settings import settings
from pulih_core.domain.conversation import SessionRecord, SessionStore
from pulih_core.domain.exceptions import PersistenceError
from pulih_core.domain.models import Message, SaveResult

# 会话 ID 直接作为目录名，只允许不含路径分隔符的安全字符
SESSION_ID_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]{0,127}")
TITLE_MAX_CHARS = 40
DEFAULT_TITLE = "Sesi baru"


class JsonSessionStore(SessionStore):
    """每个会话一个目录：meta.json 保存标题与时间，messages.json 保存完整历史。

    save() 每次整体覆盖历史，同一份历史重复保存不会产生重复消息。
    """

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._sessions_root = self._root / "sessions"
        try:
            self._sessions_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(code="STORE_WRITE_ERROR", message=str(e))

    def save(self, session_id: Optional[str], history: Sequence[Message]) -> SaveResult:
        now = datetime.now(timezone.utc)
        if session_id:
            record = self.get_session(session_id)
            record.updated_at = now
        else:
            session_id = f"s-{uuid4().hex}"
            record = SessionRecord(
                id=session_id,
                title=_derive_title(history),
                created_at=now,
                updated_at=now,
            )
            try:
                (self._sessions_root / session_id).mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PersistenceError(code="STORE_WRITE_ERROR", message=str(e))
        record.meta["message_count"] = len(history)
        sdir = self._session_dir(session_id)
        self._write_json(sdir, "messages.json", [m.to_payload() for m in history])
        self._write_meta(sdir, record)
        return SaveResult(id=session_id)

    def get_session(self, session_id: str) -> SessionRecord:
        sdir = self._session_dir(session_id)
        if not (sdir / "meta.json").is_file():
            raise PersistenceError(code="SESSION_NOT_FOUND", message=session_id)
        try:
            meta = json.loads((sdir / "meta.json").read_text(encoding="utf-8"))
            messages = self._read_messages(sdir)
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            raise PersistenceError(code="STORE_READ_ERROR", message=str(e))
        record = self._to_record(meta)
        record.messages = messages
        return record

    def list_sessions(self) -> List[SessionRecord]:
        """按最近更新时间倒序列出会话（不加载消息）。"""

        items: List[SessionRecord] = []
        for sdir in self._sessions_root.glob("*/"):
            meta_path = sdir / "meta.json"
            if not meta_path.exists():
                continue
            try:
                items.append(self._to_record(json.loads(meta_path.read_text(encoding="utf-8"))))
            except (OSError, json.JSONDecodeError, KeyError, ValueError):
                continue
        items.sort(key=lambda r: r.updated_at, reverse=True)
        return items

    def delete_session(self, session_id: str) -> None:
        sdir = self._session_dir(session_id)
        if not sdir.is_dir():
            raise PersistenceError(code="SESSION_NOT_FOUND", message=session_id)
        try:
            shutil.rmtree(sdir)
        except OSError as e:
            raise PersistenceError(code="STORE_DELETE_ERROR", message=str(e))

    def update_session_title(self, session_id: str, title: str) -> None:
        """更新会话标题。"""
        record = self.get_session(session_id)
        record.title = title
        record.updated_at = datetime.now(timezone.utc)
        self._write_meta(self._session_dir(session_id), record)

    def _session_dir(self, session_id: str) -> Path:
        if not isinstance(session_id, str) or not SESSION_ID_RE.fullmatch(session_id):
            raise PersistenceError(code="SESSION_NOT_FOUND", message=str(session_id))
        return self._sessions_root / session_id

    def _read_messages(self, sdir: Path) -> List[Message]:
        path = sdir / "messages.json"
        if not path.exists():
            return []
        return [Message.from_payload(item) for item in json.loads(path.read_text(encoding="utf-8"))]

    def _write_meta(self, sdir: Path, record: SessionRecord) -> None:
        obj = {
            "id": record.id,
            "title": record.title,
            "created_at": _iso(record.created_at),
            "updated_at": _iso(record.updated_at),
            "meta": record.meta,
        }
        self._write_json(sdir, "meta.json", obj)

    @staticmethod
    def _write_json(sdir: Path, name: str, obj: Any) -> None:
        tmp_path = sdir / f"{name}.{uuid4().hex}.tmp"
        try:
            tmp_path.write_text(json.dumps(obj, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, sdir / name)
        except OSError as e:
            raise PersistenceError(code="STORE_WRITE_ERROR", message=str(e))

    @staticmethod
    def _to_record(data: Dict[str, Any]) -> SessionRecord:
        return SessionRecord(
            id=data["id"],
            title=data.get("title") or DEFAULT_TITLE,
            created_at=datetime.fromisoformat(data["created_at"].replace("Z", "+00:00")),
            updated_at=datetime.fromisoformat(data["updated_at"].replace("Z", "+00:00")),
            meta=data.get("meta") or {},
        )


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _derive_title(history: Sequence[Message]) -> str:
    for m in history:
        if m.role == "user" and m.content.strip():
            text = " ".join(m.content.split())
            if len(text) > TITLE_MAX_CHARS:
                return text[: TITLE_MAX_CHARS - 3].rstrip() + "..."
            return text
    return DEFAULT_TITLE
