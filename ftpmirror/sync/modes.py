"""Sync directions and their strategy table."""

from dataclasses import dataclass
from enum import Enum

from .plan import QueueName


class Side(str, Enum):
    """One end of a sync."""

    LOCAL = "local"
    REMOTE = "remote"


class Direction(str, Enum):
    """Which side is authoritative.

    Examples:
        >>> Direction.from_string("l2r")
        <Direction.LOCAL_TO_REMOTE: 'localToRemote'>
        >>> Direction.from_string("remoteToLocal").mirror
        <Side.LOCAL: 'local'>
    """

    LOCAL_TO_REMOTE = "localToRemote"
    """Local tree is the source of truth, remote is updated"""

    REMOTE_TO_LOCAL = "remoteToLocal"
    """Remote tree is the source of truth, local is updated"""

    @classmethod
    def from_string(cls, value: str) -> "Direction":
        """Parse a direction from its value, name or abbreviation.

        Raises:
            ValueError: If the value is not a known direction
        """
        if isinstance(value, Direction):
            return value
        key = value.strip()
        normalized = key.lower().replace("-", "_")
        for direction in cls:
            if key == direction.value or normalized == direction.name.lower():
                return direction
        abbreviation = _ABBREVIATIONS.get(normalized)
        if abbreviation is None:
            valid = ", ".join(d.value for d in cls)
            raise ValueError(f"Unknown direction '{value}' (expected one of {valid})")
        return abbreviation

    @property
    def strategy(self) -> "DirectionStrategy":
        """Strategy entry for this direction."""
        return STRATEGIES[self]

    @property
    def authoritative(self) -> Side:
        return self.strategy.authoritative

    @property
    def mirror(self) -> Side:
        return self.strategy.mirror


_ABBREVIATIONS = {
    "l2r": Direction.LOCAL_TO_REMOTE,
    "ltr": Direction.LOCAL_TO_REMOTE,
    "upload": Direction.LOCAL_TO_REMOTE,
    "r2l": Direction.REMOTE_TO_LOCAL,
    "rtl": Direction.REMOTE_TO_LOCAL,
    "download": Direction.REMOTE_TO_LOCAL,
}


@dataclass(frozen=True)
class DirectionStrategy:
    """Everything that differs between the two directions."""

    authoritative: Side
    """Side whose tree is the source of truth"""

    mirror: Side
    """Side whose store executes mkdir/rmdir/remove"""

    commit_order: tuple[QueueName, ...]
    """Order in which the plan queues are committed"""

    transfer: str
    """Remote store method moving a file onto the mirror side"""


STRATEGIES: dict[Direction, DirectionStrategy] = {
    # Files go before their directories: the remote rmdir may not be recursive
    Direction.LOCAL_TO_REMOTE: DirectionStrategy(
        authoritative=Side.LOCAL,
        mirror=Side.REMOTE,
        commit_order=(
            QueueName.MAKE_DIRS,
            QueueName.ADD_FILES,
            QueueName.UPDATE_FILES,
            QueueName.REMOVE_FILES,
            QueueName.REMOVE_DIRS,
        ),
        transfer="upload",
    ),
    # Local rmdir is recursive, remove_files only holds files outside removed dirs
    Direction.REMOTE_TO_LOCAL: DirectionStrategy(
        authoritative=Side.REMOTE,
        mirror=Side.LOCAL,
        commit_order=(
            QueueName.MAKE_DIRS,
            QueueName.ADD_FILES,
            QueueName.UPDATE_FILES,
            QueueName.REMOVE_DIRS,
            QueueName.REMOVE_FILES,
        ),
        transfer="download",
    ),
}
