"""
Externally-sourced validation messages.

A remote authority reports validation results as ValidationInfo entries,
each carrying messages addressed to tree paths. The session keeps one store
per severity ("error", "warning"); a new batch fully replaces the previous
one for its severity.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

SEVERITIES = ("error", "warning")


@dataclass(frozen=True)
class Message:
    """One message addressed to a tree path."""
    path: str
    message: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        return cls(path=data['path'], message=data['message'])


@dataclass(frozen=True)
class ValidationInfo:
    """A batch of messages from one validation source (``id``)."""
    id: str
    messages: List[Message] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ValidationInfo':
        return cls(
            id=data['id'],
            messages=[_as_message(m) for m in data.get('messages', [])],
        )


def _as_message(data: Union[Message, Dict[str, Any]]) -> Message:
    return data if isinstance(data, Message) else Message.from_dict(data)


def as_validation_info(data: Union[ValidationInfo, Dict[str, Any]]) -> ValidationInfo:
    return data if isinstance(data, ValidationInfo) else ValidationInfo.from_dict(data)


class ExternalMessages:
    """Path -> message store for one severity."""

    def __init__(self):
        self._messages: Dict[str, str] = {}

    def replace(self, infos: Iterable[ValidationInfo]) -> None:
        """Replace the whole store; the first message for a path wins."""
        messages: Dict[str, str] = {}
        for info in infos:
            for message in info.messages:
                messages.setdefault(message.path, message.message)
        self._messages = messages

    def clear(self) -> None:
        self._messages = {}

    def get(self, path: str) -> Optional[str]:
        return self._messages.get(path)

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, path: str) -> bool:
        return path in self._messages
