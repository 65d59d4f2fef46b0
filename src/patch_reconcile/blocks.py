"""Homogeneous modification block identification.

A hunk's changes are folded through a small state machine:

    Scanning(last_context) --change--> InBlock(type, changes, top_frame)
    InBlock --same-type change--> InBlock (run grows)
    InBlock --context--> Scanning(context)   [block emitted with bottom frame]
    InBlock --other-type change--> Scanning(None)   [block abandoned]

A block still open when the hunk ends is emitted without a bottom frame.
"""

import logging
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .models import BlockType, Change, ChangeType, Frame, Hunk, ModificationBlock, Patch

logger = logging.getLogger(__name__)


class Scanning(BaseModel):
    """Between blocks; remembers the most recent context line."""

    model_config = ConfigDict(frozen=True)

    last_context: Optional[Frame] = None


class InBlock(BaseModel):
    """Inside a run of same-type changes."""

    model_config = ConfigDict(frozen=True)

    type: BlockType
    changes: Tuple[Change, ...]
    top_frame: Optional[Frame] = None
    start_line_number: int


BlockState = Union[Scanning, InBlock]


class Step(BaseModel):
    """Result of feeding one change to the reducer."""

    model_config = ConfigDict(frozen=True)

    state: BlockState
    emitted: Optional[ModificationBlock] = None
    warning: Optional[str] = None


def _block_type_of(change: Change) -> BlockType:
    return BlockType.ADDITION if change.type is ChangeType.ADDITION else BlockType.DELETION


def _emit(
    state: InBlock, hunk_index: int, bottom_frame: Optional[Frame] = None
) -> ModificationBlock:
    return ModificationBlock(
        type=state.type,
        changes=list(state.changes),
        top_frame=state.top_frame,
        bottom_frame=bottom_frame,
        hunk_index=hunk_index,
        start_line_number=state.start_line_number,
    )


def advance(
    state: BlockState,
    change: Change,
    old_line: int,
    new_line: int,
    hunk_index: int,
) -> Step:
    """Pure transition function of the block state machine.

    Args:
        state: Current state
        change: The change being consumed
        old_line: 1-based old-file line of this change
        new_line: 1-based new-file line of this change
        hunk_index: Index of the hunk being walked, stamped on emitted blocks

    Returns:
        Step holding the next state plus any emitted block or warning
    """
    if change.type is ChangeType.CONTEXT:
        frame = Frame(content=change.content, old_line_number=old_line, new_line_number=new_line)
        emitted = None
        if isinstance(state, InBlock):
            emitted = _emit(state, hunk_index, bottom_frame=frame)
        return Step(state=Scanning(last_context=frame), emitted=emitted)

    snapshot = change.model_copy()
    block_type = _block_type_of(change)

    if isinstance(state, Scanning):
        start = new_line if block_type is BlockType.ADDITION else old_line
        return Step(
            state=InBlock(
                type=block_type,
                changes=(snapshot,),
                top_frame=state.last_context,
                start_line_number=start,
            )
        )

    if block_type is not state.type:
        return Step(
            state=Scanning(),
            warning=(
                f"Mixed modification block detected in hunk {hunk_index}: "
                f"{change.type.marker!r} line follows a {state.type.value} run without context; "
                f"block at line {state.start_line_number} dropped"
            ),
        )

    return Step(state=state.model_copy(update={"changes": state.changes + (snapshot,)}))


def identify_hunk_blocks(hunk: Hunk, hunk_index: int) -> Tuple[List[ModificationBlock], List[str]]:
    """Identify the modification blocks of a single hunk.

    Returns:
        Tuple of (blocks in hunk order, warnings for abandoned runs)
    """
    blocks: List[ModificationBlock] = []
    warnings: List[str] = []
    state: BlockState = Scanning()
    old_line = hunk.old_start
    new_line = hunk.new_start

    for change in hunk.changes:
        step = advance(state, change, old_line, new_line, hunk_index)
        state = step.state
        if step.emitted is not None:
            blocks.append(step.emitted)
        if step.warning is not None:
            logger.warning(step.warning)
            warnings.append(step.warning)

        if change.type is ChangeType.CONTEXT:
            old_line += 1
            new_line += 1
        elif change.type is ChangeType.DELETION:
            old_line += 1
        else:
            new_line += 1

    if isinstance(state, InBlock):
        blocks.append(_emit(state, hunk_index))

    return blocks, warnings


def identify_blocks(patch: Patch) -> List[ModificationBlock]:
    """Identify every modification block of a file section, hunk by hunk."""
    blocks: List[ModificationBlock] = []
    for hunk_index, hunk in enumerate(patch.hunks):
        hunk_blocks, _ = identify_hunk_blocks(hunk, hunk_index)
        blocks.extend(hunk_blocks)
    return blocks
