"""输出分类器：把远端终态结果拆分为回复文本与文件描述，并物化为附件。"""

from __future__ import annotations

import logging
import mimetypes
from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from gradio_bot.domain.models import Attachment, AttachmentDescriptor

logger = logging.getLogger(__name__)

# 超过该长度的数组不展开，避免把长数值/文本结果误判为文件列表。
MAX_EXPANDED_SEQUENCE = 10


class AttachmentFetcher(Protocol):
    def fetch(self, url: str) -> bytes: ...


@dataclass(slots=True)
class ClassifiedOutput:
    text: str
    descriptors: list[AttachmentDescriptor] = field(default_factory=list)


def is_file_descriptor(node: Any) -> bool:
    """带字符串 url 且含 orig_name 或 mime_type 字段的对象视为文件。"""
    return (
        isinstance(node, Mapping)
        and isinstance(node.get("url"), str)
        and ("orig_name" in node or "mime_type" in node)
    )


def _format_scalar(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def attachment_name(descriptor: AttachmentDescriptor) -> str:
    """优先使用原始文件名，否则按媒体类型生成文件名。"""
    if descriptor.orig_name:
        return descriptor.orig_name
    if descriptor.mime_type:
        extension = mimetypes.guess_extension(descriptor.mime_type)
        if extension:
            return f"file{extension}"
        subtype = descriptor.mime_type.rsplit("/", 1)[-1]
        return f"file.{subtype}"
    return "file"


class OutputClassifier:
    """输出分类器。"""

    def __init__(self, max_sequence_length: int = MAX_EXPANDED_SEQUENCE) -> None:
        self._max_sequence_length = max_sequence_length

    def classify(self, result: Any) -> ClassifiedOutput:
        return ClassifiedOutput(text=self.text(result), descriptors=self.descriptors(result))

    @staticmethod
    def text(result: Any) -> str:
        """只收集结果顶层的字符串与数字，嵌套层级的标量不计入文本。"""
        items = result if isinstance(result, (list, tuple)) else [result]
        parts: list[str] = []
        for item in items:
            if isinstance(item, bool):
                continue
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, (int, float)):
                parts.append(_format_scalar(item))
        return "\n".join(parts)

    def descriptors(self, result: Any) -> list[AttachmentDescriptor]:
        """广度优先遍历结果，收集文件描述。"""
        found: list[AttachmentDescriptor] = []
        queue: deque[Any] = deque([result])
        while queue:
            current = queue.popleft()
            if is_file_descriptor(current):
                found.append(
                    AttachmentDescriptor(
                        url=current["url"],
                        orig_name=current.get("orig_name"),
                        mime_type=current.get("mime_type"),
                    )
                )
            elif isinstance(current, (list, tuple)):
                if len(current) < self._max_sequence_length:
                    queue.extend(current)
            elif isinstance(current, Mapping):
                queue.extend(current.values())
        return found


def materialize(descriptors: Sequence[AttachmentDescriptor], fetcher: AttachmentFetcher) -> list[Attachment]:
    """依次拉取文件内容并生成附件。"""
    attachments: list[Attachment] = []
    for descriptor in descriptors:
        content = fetcher.fetch(descriptor.url)
        attachments.append(Attachment(url=descriptor.url, name=attachment_name(descriptor), content=content))
    logger.debug(
        "attachments materialized",
        extra={"event": "output.attachments.fetched", "payload_preview": {"count": len(attachments)}},
    )
    return attachments


def batched(items: Sequence[Attachment], size: int) -> list[list[Attachment]]:
    size = max(size, 1)
    return [list(items[index : index + size]) for index in range(0, len(items), size)]
