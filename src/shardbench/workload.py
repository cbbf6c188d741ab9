"""Deterministic-shape, randomized-content message workloads.

A workload is generated once per run and handed, unmodified, to every schema
variant so that each one sees exactly the same rows in the same order.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Sequence

from shardbench.errors import GenerationError

TOPIC_PREFIX = "t"
KEY_COLUMNS = ("topic_id", "shard_id", "message_id")


class MessageKey(NamedTuple):
    topic_id: str
    shard_id: int
    message_id: int


def topic_name(index: int) -> str:
    return f"{TOPIC_PREFIX}{int(index)}"


@dataclass(frozen=True)
class WorkloadSet:
    keys: tuple[MessageKey, ...]
    num_topics: int
    num_shards: int
    num_messages: int
    msg_id_range: int
    seed: int

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[MessageKey]:
        return iter(self.keys)

    def prefix(self, limit: int) -> tuple[MessageKey, ...]:
        if limit < 0:
            raise ValueError("limit must be non-negative")
        return self.keys[:limit]

    def duplicate_keys(self, columns: Sequence[str]) -> list[tuple]:
        """Projections of the workload onto ``columns`` that occur more than once."""
        unknown = [column for column in columns if column not in KEY_COLUMNS]
        if unknown:
            raise ValueError(f"unknown key columns: {', '.join(unknown)}")
        counts = Counter(tuple(getattr(key, column) for column in columns) for key in self.keys)
        return [projection for projection, count in counts.items() if count > 1]


def _require_positive(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise GenerationError(f"{name} must be an integer, got {type(value).__name__}")
    if value <= 0:
        raise GenerationError(f"{name} must be positive, got {value}")
    return value


def _new_seed() -> int:
    return random.SystemRandom().randrange(2**31)


def generate_workload(
    num_topics: int,
    num_shards: int,
    num_messages: int,
    msg_id_range: int,
    *,
    seed: int | None = None,
) -> WorkloadSet:
    """Generate ``num_topics * num_messages`` message keys.

    Message ids are sampled without replacement within each topic (they may
    repeat across topics); every message gets an independent uniform shard.
    The same ``seed`` always yields the same workload.
    """
    _require_positive("num_topics", num_topics)
    _require_positive("num_shards", num_shards)
    _require_positive("num_messages", num_messages)
    _require_positive("msg_id_range", msg_id_range)
    if num_messages > msg_id_range:
        raise GenerationError(
            f"cannot sample {num_messages} distinct message ids from a range of {msg_id_range}"
        )

    if seed is None:
        seed = _new_seed()
    rng = random.Random(seed)
    keys: list[MessageKey] = []
    for topic_index in range(1, num_topics + 1):
        topic_id = topic_name(topic_index)
        for message_id in rng.sample(range(1, msg_id_range + 1), num_messages):
            shard_id = rng.randint(1, num_shards)
            keys.append(MessageKey(topic_id, shard_id, message_id))

    return WorkloadSet(
        keys=tuple(keys),
        num_topics=num_topics,
        num_shards=num_shards,
        num_messages=num_messages,
        msg_id_range=msg_id_range,
        seed=int(seed),
    )
