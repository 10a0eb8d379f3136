from enum import Enum


class AccessOrderKind(str, Enum):
    """
    Retrieval discipline for idle pool instances.

    FIFO hands out the instance that has been idle the longest (queue).
    LIFO hands out the most recently returned instance (stack).
    """

    FIFO = "fifo"
    LIFO = "lifo"

    @classmethod
    def parse(cls, value: "AccessOrderKind | str") -> "AccessOrderKind":
        """Resolve an enum member or its case-insensitive name/value.

        Raises ValueError for anything that does not name a member.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        raise ValueError(f"Unknown access order: {value!r}")
