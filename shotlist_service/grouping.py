"""Scene grouping: split the shot sequence into contiguous runs of one scene."""

from typing import List, Sequence

from .types import SceneGroup, ShotRecord


def group_by_scene(shots: Sequence[ShotRecord]) -> List[SceneGroup]:
    """
    Partition shots into contiguous same-scene groups, preserving order.

    A new group starts whenever a shot's scene differs from the previous
    shot's. The empty label is an ordinary label, so a run of unlabelled
    shots forms its own group. Two separate runs of the same label stay two
    groups.

    Example:
        scenes A, A, B, A -> [A(2), B(1), A(1)]
    """
    groups: List[SceneGroup] = []
    current: List[ShotRecord] = []

    for shot in shots:
        if current and shot.scene != current[-1].scene:
            groups.append(SceneGroup(scene=current[-1].scene, shots=tuple(current)))
            current = []
        current.append(shot)

    if current:
        groups.append(SceneGroup(scene=current[-1].scene, shots=tuple(current)))

    return groups
