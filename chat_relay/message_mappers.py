"""Turn normalization and conversion to provider-specific message formats."""

from collections.abc import Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .constants import STRICT_SINGLE_TURN_PROVIDERS
from .errors import NoUserMessageError, NoValidMessagesError
from .model_registry import ModelDescriptor
from .turns import ChatTurn


def normalize_turns(turns: Sequence[ChatTurn], descriptor: ModelDescriptor) -> list[ChatTurn]:
    """Reduce turns to the structure the descriptor's provider accepts.

    Blank turns are dropped. Strict single-turn providers get only the most
    recent user turn; everyone else gets every turn in order with system turns
    sent as user turns, since several providers reject system turns
    mid-conversation. Pure: the result depends only on the arguments.
    """
    kept = [turn.trimmed() for turn in turns if not turn.is_blank]
    if not kept:
        raise NoValidMessagesError()

    if descriptor.provider in STRICT_SINGLE_TURN_PROVIDERS:
        for turn in reversed(kept):
            if turn.role == "user":
                return [ChatTurn(role="user", content=turn.content)]
        raise NoUserMessageError()

    return [
        ChatTurn(role="user", content=turn.content, model_tag=turn.model_tag)
        if turn.role == "system"
        else turn
        for turn in kept
    ]


def build_openai_messages(turns: Sequence[ChatTurn]) -> list[dict[str, str]]:
    """Convert turns to Chat Completions ``messages``."""
    return [{"role": turn.role, "content": turn.content} for turn in turns]


def build_langchain_messages(turns: Sequence[ChatTurn]) -> list[BaseMessage]:
    """Convert turns to LangChain message objects."""
    lc_messages: list[BaseMessage] = []
    for turn in turns:
        if turn.role == "assistant":
            lc_messages.append(AIMessage(content=turn.content))
        elif turn.role == "system":
            lc_messages.append(SystemMessage(content=turn.content))
        else:
            lc_messages.append(HumanMessage(content=turn.content))
    return lc_messages


def message_content_text(content: str | list[str | dict]) -> str:
    """Flatten LangChain message content, which may be a list of blocks."""
    if isinstance(content, str):
        return content
    return "".join(
        block.get("text", "") if isinstance(block, dict) else str(block) for block in content
    )
