"""会话连续性管理。

一个聊天界面持有一个 ConversationManager。管理器编排一次完整交互：

1. 用户消息立即写入历史（并显示用户气泡，自动触发的消息除外）。
2. 以包含新消息的完整历史和当前会话 ID 打开推理流。
3. 字节流经 LineFramer -> classify -> DeltaAccumulator，每次可见更新
   都同步推送完整快照给视图。
4. 正常结束：追加助手消息并保存；会话 ID 为空时采用存储返回的 ID。
5. 保存之后再获取后续话题建议，失败不影响已提交的交互。
6. 传输失败：保留部分回复并附加错误标记，历史回滚到发送前。

同一界面同一时间只允许一个交互处于 sending/streaming 状态。
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
from uuid import uuid4

from pulih_core.domain.conversation import (
    ChatView,
    CrisisAdvisorySink,
    SessionRecord,
    SessionStore,
    SessionSummarizer,
    SuggestionsProvider,
)
from pulih_core.domain.exceptions import (
    ExchangeInProgressError,
    PersistenceError,
    TransportError,
    ValidationError,
)
from pulih_core.domain.models import ExchangeResult, ExchangeState, Message
from pulih_core.infrastructure.logging.logger import logger
from pulih_core.prompts import GREETING, SUMMARY_HEADING, build_mood_prompt
from pulih_core.providers.base import InferenceTransport
from pulih_core.scanners import CrisisScanner, default_scanner
from pulih_core.streaming.pipeline import StreamOutcome, StreamPipeline

ERROR_MARKER = "\n\n[Error: {message}]"


class ConversationSession:
    """界面独占的会话对象：按对话顺序排列的消息 + 可选的会话 ID。

    session_id 为 None 表示尚未持久化，下一次成功提交会创建会话。
    新建会话或载入历史会话时整体替换该对象，而不是原地清空。
    """

    def __init__(self, messages: Optional[Sequence[Message]] = None, session_id: Optional[str] = None):
        self._messages: List[Message] = list(messages or [])
        self.session_id = session_id

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def rollback(self, length: int) -> None:
        """丢弃 length 之后的消息，用于撤销未提交的交互。"""

        del self._messages[length:]

    def __len__(self) -> int:
        return len(self._messages)


@dataclass
class _Exchange:
    session: ConversationSession
    base_len: int = 0
    auto: bool = False
    state: ExchangeState = "sending"
    stream: Any = None
    rolled_back: bool = False
    trace_id: str = field(default_factory=lambda: f"ex-{uuid4().hex}")
    abandoned: threading.Event = field(default_factory=threading.Event)


class ConversationManager:
    def __init__(
        self,
        transport: InferenceTransport,
        store: SessionStore,
        view: ChatView,
        suggester: Optional[SuggestionsProvider] = None,
        summarizer: Optional[SessionSummarizer] = None,
        advisory: Optional[CrisisAdvisorySink] = None,
        scanner: Optional[CrisisScanner] = None,
        session: Optional[ConversationSession] = None,
    ):
        self._transport = transport
        self._store = store
        self._view = view
        self._suggester = suggester
        self._summarizer = summarizer
        self._advisory = advisory
        self._scanner = scanner or default_scanner()
        self._session = session or ConversationSession()
        self._active: Optional[_Exchange] = None
        self._lock = threading.RLock()

    @property
    def session(self) -> ConversationSession:
        return self._session

    @property
    def history(self) -> List[Message]:
        return self._session.messages

    @property
    def session_id(self) -> Optional[str]:
        return self._session.session_id

    @property
    def state(self) -> ExchangeState:
        active = self._active
        return active.state if active is not None else "idle"

    @property
    def busy(self) -> bool:
        return self._active is not None

    # ---- 发送 ----

    def send(self, text: str, auto: bool = False) -> ExchangeResult:
        """发送一条消息并同步读取完整的流式回复。

        auto=True 表示系统自动触发（例如心情更新），不显示用户气泡。
        前置条件：当前没有进行中的交互，否则抛出 ExchangeInProgressError。
        """

        text = (text or "").strip()
        if not text:
            raise ValidationError(code="EMPTY_MESSAGE", message="Message is required")
        with self._lock:
            if self._active is not None:
                raise ExchangeInProgressError(
                    code="EXCHANGE_IN_PROGRESS",
                    message="Another exchange is still streaming",
                    http_status=409,
                )
            exchange = _Exchange(session=self._session, auto=auto)
            self._active = exchange
        try:
            return self._run_exchange(exchange, text)
        finally:
            with self._lock:
                if self._active is exchange:
                    self._active = None

    def notify_mood(self, level: int, note: str = "") -> ExchangeResult:
        """心情记录更新后让模型主动回应。"""

        if not isinstance(level, int) or not 1 <= level <= 5:
            raise ValidationError(code="INVALID_MOOD_LEVEL", message="Mood level must be between 1 and 5")
        return self.send(build_mood_prompt(level, note), auto=True)

    # ---- 会话切换 ----

    def cancel(self) -> bool:
        """放弃进行中的交互；已累积的部分回复不会提交也不会保存。

        仍在 sending/streaming 的交互会立即回滚用户消息、释放发送闸门，
        并关闭底层流以中断阻塞中的读取，调用返回后即可开始新的交互。
        已提交的交互只会跳过后续的建议获取。
        """

        with self._lock:
            active = self._active
            if active is None:
                return False
            active.abandoned.set()
            if active.state not in ("sending", "streaming"):
                return True
            active.state = "abandoned"
            self._rollback(active)
            self._active = None
            stream = active.stream
        if stream is not None:
            self._close_stream(active, stream)
        return True

    def new_chat(self) -> None:
        self.cancel()
        self._session = ConversationSession()
        self._view.show_notice(GREETING)

    def load_session(self, session: Union[str, SessionRecord]) -> ConversationSession:
        """整体替换当前历史并采用该会话的 ID；system 消息不载入。"""

        record = self._store.get_session(session) if isinstance(session, str) else session
        self.cancel()
        messages = [m for m in record.messages if m.role != "system"]
        self._session = ConversationSession(messages, session_id=record.id)
        for m in messages:
            if m.role == "user":
                self._view.show_user_message(m.content)
            else:
                self._view.finalize(m.content)
        return self._session

    # ---- 会话辅助 ----

    def summarize_session(self) -> str:
        if not self._session.session_id:
            raise ValidationError(code="NO_ACTIVE_SESSION", message="Belum ada sesi aktif.")
        if self._summarizer is None:
            raise ValidationError(code="SUMMARY_UNAVAILABLE", message="No summarizer configured")
        summary = self._summarizer.summarize(self._session.messages)
        self._view.show_notice(f"{SUMMARY_HEADING}\n\n{summary}")
        return summary

    def export_transcript(self) -> str:
        return "\n\n".join(f"{m.role.upper()}: {m.content}" for m in self._session.messages)

    def write_transcript(self, directory: Union[str, Path], today: Optional[date] = None) -> Path:
        day = (today or date.today()).isoformat()
        path = Path(directory) / f"chat-pulih-{day}.txt"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.export_transcript(), encoding="utf-8")
        return path

    # ---- 内部流程 ----

    def _run_exchange(self, exchange: _Exchange, text: str) -> ExchangeResult:
        session = exchange.session
        log_ctx: Dict[str, Any] = {
            "trace_id": exchange.trace_id,
            "session_id": session.session_id,
            "auto": exchange.auto,
        }
        crisis = self._check_crisis(text, log_ctx)
        if not exchange.auto:
            self._view.show_user_message(text)

        with self._lock:
            exchange.base_len = len(session)
            session.append(Message(role="user", content=text))
        self._log(logging.INFO, "Exchange started", log_ctx, history_len=len(session), text_len=len(text))

        pipeline = StreamPipeline()
        try:
            chunks = self._transport.open_stream(session.messages, session.session_id)
            with self._lock:
                exchange.stream = chunks
                if exchange.state == "sending":
                    exchange.state = "streaming"
            outcome = pipeline.consume(
                chunks,
                on_snapshot=partial(self._push_snapshot, exchange),
                should_stop=exchange.abandoned.is_set,
            )
        except Exception as e:
            with self._lock:
                abandoned = exchange.abandoned.is_set()
                if not abandoned:
                    self._rollback(exchange)
                    exchange.state = "failed"
            if abandoned:
                # 连接被 cancel() 关闭后，读取可能以任意异常返回
                return self._abandon(exchange, pipeline.text, crisis, log_ctx, error=str(e))
            if not isinstance(e, TransportError):
                raise
            self._view.render(pipeline.text + ERROR_MARKER.format(message=e.message or "Unknown Error"))
            self._log(
                logging.WARNING,
                "Exchange failed",
                log_ctx,
                code=e.code,
                http_status=e.http_status,
                partial_len=len(pipeline.text),
            )
            return ExchangeResult(
                state="failed",
                reply=pipeline.text,
                session_id=session.session_id,
                crisis_detected=crisis,
                error=e,
            )
        with self._lock:
            abandoned = outcome.abandoned or exchange.abandoned.is_set()
            if abandoned:
                self._rollback(exchange)
            else:
                session.append(Message(role="assistant", content=outcome.text))
                exchange.state = "committed"
        if abandoned:
            return self._abandon(exchange, outcome.text, crisis, log_ctx)
        return self._commit(exchange, outcome, crisis, log_ctx)

    def _commit(
        self,
        exchange: _Exchange,
        outcome: StreamOutcome,
        crisis: bool,
        log_ctx: Dict[str, Any],
    ) -> ExchangeResult:
        session = exchange.session
        self._view.finalize(outcome.text)
        self._log(
            logging.INFO,
            "Exchange committed",
            log_ctx,
            delta_count=outcome.delta_count,
            reply_len=len(outcome.text),
            terminated=outcome.terminated,
        )
        result = ExchangeResult(
            state="committed",
            reply=outcome.text,
            session_id=session.session_id,
            crisis_detected=crisis,
        )
        # 先保存，再取建议
        self._persist(session, result, log_ctx)
        result.suggestions = self._fetch_suggestions(exchange, log_ctx)
        return result

    def _persist(self, session: ConversationSession, result: ExchangeResult, log_ctx: Dict[str, Any]) -> None:
        was_new = session.session_id is None
        try:
            saved = self._store.save(session.session_id, session.messages)
        except PersistenceError as e:
            result.persistence_error = e
            self._log(logging.ERROR, "Failed to persist session", log_ctx, code=e.code, error=e.message)
            return
        if was_new and saved.id:
            session.session_id = saved.id
            result.session_created = True
            log_ctx["session_id"] = saved.id
            self._log(logging.INFO, "Created new session", log_ctx)
            self._view.session_created(saved.id)
        result.session_id = session.session_id

    def _fetch_suggestions(self, exchange: _Exchange, log_ctx: Dict[str, Any]) -> List[str]:
        if self._suggester is None or exchange.abandoned.is_set():
            return []
        try:
            suggestions = list(self._suggester.suggest(exchange.session.messages).suggestions)
        except Exception as e:
            # 建议是尽力而为的，失败只记录日志
            self._log(logging.WARNING, "Suggestion fetch failed", log_ctx, error=str(e))
            return []
        if suggestions and not exchange.abandoned.is_set():
            self._view.show_suggestions(suggestions)
        return suggestions

    def _abandon(
        self,
        exchange: _Exchange,
        partial_text: str,
        crisis: bool,
        log_ctx: Dict[str, Any],
        error: Optional[str] = None,
    ) -> ExchangeResult:
        exchange.state = "abandoned"
        self._log(logging.INFO, "Exchange abandoned", log_ctx, partial_len=len(partial_text), error=error)
        return ExchangeResult(
            state="abandoned",
            reply=partial_text,
            session_id=exchange.session.session_id,
            crisis_detected=crisis,
        )

    def _rollback(self, exchange: _Exchange) -> None:
        """撤销本次交互写入的用户消息，只执行一次。"""

        with self._lock:
            if exchange.rolled_back:
                return
            exchange.session.rollback(exchange.base_len)
            exchange.rolled_back = True

    def _close_stream(self, exchange: _Exchange, stream: Any) -> None:
        close = getattr(stream, "close", None)
        if close is None:
            return
        try:
            close()
        except Exception as e:
            # 读取线程会在下一块数据到达时自行停止
            self._log(logging.WARNING, "Failed to close stream", {"trace_id": exchange.trace_id}, error=str(e))

    def _push_snapshot(self, exchange: _Exchange, snapshot: str) -> None:
        if not exchange.abandoned.is_set():
            self._view.render(snapshot)

    def _check_crisis(self, text: str, log_ctx: Dict[str, Any]) -> bool:
        match = self._scanner.match(text)
        if not match.triggered:
            return False
        self._log(logging.WARNING, "Crisis advisory fired", log_ctx, keyword_count=len(match.keywords))
        if self._advisory is not None:
            try:
                self._advisory.fire()
            except Exception as e:
                # 提示面板出错不能阻断发送
                self._log(logging.ERROR, "Crisis advisory sink failed", log_ctx, error=str(e))
        return True

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
