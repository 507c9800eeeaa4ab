"""
History 将一个 Agent 的完整对话记录保存在内存中。

  - 第一条可以是 System 消息，clear() 时保留
  - 只允许追加，由 Agent 独占写入
  - 可以导出为 JSON 文件，也可以从 JSON 文件恢复
"""

import json
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

import aiofiles
from pydantic import TypeAdapter

from agentloop.model.types import Message, Role
from agentloop.utils.logger import get_logger

log = get_logger(__name__)

_messages_adapter = TypeAdapter(list[Message])


# 管理单个 Agent 的有序消息历史
# 写入方只有正在执行的 invoke 调用，读取方拿到的是不可变的 tuple 视图
class History:
    def __init__(self, system_prompt: Optional[str] = None) -> None:
        self._messages: list[Message] = []
        if system_prompt is not None:
            self._messages.append(Message.system(system_prompt))

    @property
    def system_message(self) -> Optional[Message]:
        if self._messages and self._messages[0].role == Role.SYSTEM:
            return self._messages[0]
        return None

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        self._messages.extend(messages)

    def messages(self) -> list[Message]:
        """Copy of the history, safe to hand to a provider."""
        return list(self._messages)

    def view(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def clear(self) -> None:
        """Drop everything except the initial System message."""
        system = self.system_message
        self._messages = [system] if system is not None else []
        log.debug(f"History cleared (kept system prompt: {system is not None})")

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        return _messages_adapter.dump_json(self._messages, indent=2).decode("utf-8")

    async def save(self, path: Union[str, Path]) -> Path:
        """
        Write the history as a JSON array.

        Args:
            path: Target file; parent directories are created

        Returns:
            The resolved path written to
        """
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(file_path, "w", encoding="utf-8") as f:
            await f.write(self.to_json())
        log.info(f"Saved {len(self._messages)} message(s) to {file_path}")
        return file_path

    @classmethod
    async def load(cls, path: Union[str, Path]) -> "History":
        async with aiofiles.open(Path(path), "r", encoding="utf-8") as f:
            content = await f.read()
        history = cls()
        history._messages = _messages_adapter.validate_python(json.loads(content))
        return history
