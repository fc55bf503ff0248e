"""Kinematic path following."""

from __future__ import annotations

from collections.abc import Sequence

from senseact.navigation.graph import Vec3, as_vec3, distance


def advance(
    position: Sequence[float],
    path: Sequence[Sequence[float]],
    max_step: float,
    acceptable_distance: float = 0.0,
) -> tuple[Vec3, list[Vec3]]:
    """Move up to ``max_step`` along ``path``.

    Waypoints within ``acceptable_distance`` of the current position count as
    reached and are consumed without spending movement.

    Returns:
        The new position and the waypoints still ahead.
    """
    current = as_vec3(position)
    remaining = [as_vec3(p) for p in path]
    step_left = max(0.0, max_step)

    while remaining:
        target = remaining[0]
        gap = distance(current, target)
        if gap <= acceptable_distance:
            remaining.pop(0)
            continue
        if step_left <= 0:
            break
        if gap <= step_left:
            current = target
            step_left -= gap
            remaining.pop(0)
            continue
        ratio = step_left / gap
        current = Vec3(*(c + (t - c) * ratio for c, t in zip(current, target)))
        break

    return current, remaining
