"""Block tree: the ordered, typed content of one document.

Every operation is pure and returns a new list; the input list and its
blocks are never mutated. Operations that target an unknown block id return
the input unchanged rather than raising, so the editor can fire them freely.

Only depth 0 is edited. ``children`` is carried through untouched.
"""
import enum
import json
import random
import string
import time
from typing import List, NamedTuple, Optional, Sequence, Tuple

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
)

from app.core.exceptions import SnapshotError


class BlockType(str, enum.Enum):
    PARAGRAPH = "paragraph"
    HEADING_1 = "heading-1"
    HEADING_2 = "heading-2"
    HEADING_3 = "heading-3"
    BULLET_LIST = "bullet-list"
    NUMBERED_LIST = "numbered-list"
    TODO_LIST = "todo-list"
    CODE = "code"
    IMAGE = "image"
    TABLE = "table"
    CALENDAR = "calendar"
    FILE = "file"


# Older clients still send these names
LEGACY_BLOCK_TYPES = {
    "to-do": BlockType.TODO_LIST,
    "todo": BlockType.TODO_LIST,
}

OPEN_MARKER = "[ ]"
DONE_MARKER = "[x]"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_block_id() -> str:
    """Generate a block id in the ``block-<ms>-<random>`` form"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"block-{int(time.time() * 1000)}-{suffix}"


class Block(BaseModel):
    """One typed, independently editable unit of document content"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_block_id, min_length=1)
    type: BlockType = BlockType.PARAGRAPH
    content: str = ""
    done: bool = Field(default=False, validation_alias=AliasChoices("done", "completed"))
    children: List["Block"] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str) and v in LEGACY_BLOCK_TYPES:
            return LEGACY_BLOCK_TYPES[v]
        return v


Block.model_rebuild()

_BLOCK_LIST = TypeAdapter(List[Block])


class KeyOutcome(NamedTuple):
    """Result of a key press: the new blocks and where focus should go"""
    blocks: List[Block]
    focus_id: Optional[str]
    show_type_menu: bool = False


def block_index(blocks: Sequence[Block], block_id: str) -> int:
    for index, block in enumerate(blocks):
        if block.id == block_id:
            return index
    return -1


def find_block(blocks: Sequence[Block], block_id: str) -> Optional[Block]:
    index = block_index(blocks, block_id)
    return blocks[index] if index != -1 else None


def duplicate_ids(blocks: Sequence[Block]) -> List[str]:
    """Return ids that occur more than once at depth 0"""
    seen = set()
    duplicates = []
    for block in blocks:
        if block.id in seen and block.id not in duplicates:
            duplicates.append(block.id)
        seen.add(block.id)
    return duplicates


def new_block(
    blocks: Sequence[Block] = (),
    block_type: BlockType = BlockType.PARAGRAPH,
    content: str = ""
) -> Block:
    """Create an empty block whose id does not collide with ``blocks``"""
    taken = {block.id for block in blocks}
    block_id = generate_block_id()
    while block_id in taken:
        block_id = generate_block_id()
    return Block(id=block_id, type=block_type, content=content)


def ensure_blocks(blocks: Sequence[Block]) -> List[Block]:
    """A document always has at least one block"""
    if blocks:
        return list(blocks)
    return [new_block()]


def insert_after(
    blocks: Sequence[Block],
    after_id: str,
    block: Optional[Block] = None
) -> List[Block]:
    """Insert ``block`` (default: empty paragraph) right after ``after_id``"""
    index = block_index(blocks, after_id)
    if index == -1:
        return list(blocks)

    if block is None:
        block = new_block(blocks)
    elif find_block(blocks, block.id) is not None:
        block = block.model_copy(update={"id": new_block(blocks).id})

    return [*blocks[:index + 1], block, *blocks[index + 1:]]


def delete(blocks: Sequence[Block], block_id: str) -> List[Block]:
    """Remove a block, unless it is the last one"""
    if len(blocks) <= 1:
        return list(blocks)
    return [block for block in blocks if block.id != block_id]


def set_content(blocks: Sequence[Block], block_id: str, content: str) -> List[Block]:
    return [
        block.model_copy(update={"content": content}) if block.id == block_id else block
        for block in blocks
    ]


def set_type(blocks: Sequence[Block], block_id: str, block_type: BlockType) -> List[Block]:
    block_type = BlockType(block_type)
    return [
        block.model_copy(update={"type": block_type}) if block.id == block_id else block
        for block in blocks
    ]


def split_todo_marker(content: str) -> Tuple[Optional[bool], str]:
    """Split leading ``[x]``/``[ ]`` markers off ``content``.

    Returns the state of the first marker (None when there is none) and the
    text after every leading marker, so a double-prefixed ``[ ][x] milk``
    collapses to a single marker on the next toggle.
    """
    state = None
    rest = content
    while len(rest) >= 3 and rest[0] == "[" and rest[2] == "]" and rest[1] in " xX":
        if state is None:
            state = rest[1] != " "
        rest = rest[3:]
    return state, rest


def is_done(block: Block) -> bool:
    marker_state, _ = split_todo_marker(block.content)
    return marker_state if marker_state is not None else block.done


def toggle_todo(block: Block) -> Block:
    """Flip the completion state of a todo-list block.

    ``done`` is the completion flag. Content that still carries the legacy
    leading marker keeps it, normalized to exactly one marker.
    """
    if block.type != BlockType.TODO_LIST:
        return block

    marker_state, text = split_todo_marker(block.content)
    if marker_state is None:
        return block.model_copy(update={"done": not block.done})

    done = not marker_state
    marker = DONE_MARKER if done else OPEN_MARKER
    return block.model_copy(update={"done": done, "content": marker + text})


def toggle_todo_in(blocks: Sequence[Block], block_id: str) -> List[Block]:
    return [toggle_todo(block) if block.id == block_id else block for block in blocks]


def handle_key(
    blocks: Sequence[Block],
    block_id: str,
    key: str,
    shift: bool = False
) -> KeyOutcome:
    """Apply the editor's keyboard protocol to the block with focus"""
    index = block_index(blocks, block_id)
    if index == -1:
        return KeyOutcome(list(blocks), None)

    block = blocks[index]

    if key == "Enter" and not shift:
        created = new_block(blocks)
        return KeyOutcome(insert_after(blocks, block_id, created), created.id)

    if key == "Backspace" and block.content == "" and len(blocks) > 1:
        focus_id = blocks[index - 1].id if index > 0 else None
        return KeyOutcome(delete(blocks, block_id), focus_id)

    if key == "/" and block.content == "":
        return KeyOutcome(list(blocks), block_id, show_type_menu=True)

    return KeyOutcome(list(blocks), block_id)


def plain_text(blocks: Sequence[Block]) -> str:
    """Concatenate block contents, one block per line"""
    return "\n".join(block.content for block in blocks if block.content)


def dump_blocks(blocks: Sequence[Block]) -> str:
    """Serialize blocks into the opaque string stored at rest"""
    return json.dumps(
        [block.model_dump(mode="json") for block in blocks],
        ensure_ascii=False
    )


def load_blocks(raw: str) -> List[Block]:
    """Parse a serialized block list, raising SnapshotError when malformed"""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Blocks are not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise SnapshotError("Blocks must be a JSON array")

    try:
        return _BLOCK_LIST.validate_python(data)
    except ValidationError as e:
        raise SnapshotError(f"Blocks have an invalid shape: {e.error_count()} error(s)") from e
