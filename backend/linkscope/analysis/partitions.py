"""Set partitions of transaction input/output indices"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Iterator, List, Sequence, Tuple


@dataclass(frozen=True)
class Partition:
    """
    Grouping of indices into non-empty, disjoint blocks

    Blocks are kept in canonical order (by smallest index) so partitions with
    the same blocks compare and hash equal.
    """

    blocks: Tuple[FrozenSet[int], ...]

    @classmethod
    def from_blocks(cls, blocks: Iterable[Iterable[int]]) -> "Partition":
        frozen = [frozenset(block) for block in blocks]
        frozen.sort(key=lambda block: min(block) if block else -1)
        return cls(tuple(frozen))

    def __len__(self) -> int:
        return len(self.blocks)

    def indices(self) -> FrozenSet[int]:
        return frozenset().union(*self.blocks)

    def covers(self, indices: Iterable[int]) -> bool:
        """True if the blocks are non-empty, pairwise disjoint and exactly cover ``indices``"""
        expected = set(indices)
        seen = set()
        for block in self.blocks:
            if not block or seen & block:
                return False
            seen |= block
        return seen == expected

    def block_sums(self, values: Sequence[int]) -> List[int]:
        return [sum(values[i] for i in block) for block in self.blocks]

    def signature(self, values: Sequence[int]) -> Tuple[int, ...]:
        """Sorted block sums; two partitions can be mapped onto each other iff these match"""
        return tuple(sorted(self.block_sums(values)))

    def as_lists(self) -> List[List[int]]:
        return [sorted(block) for block in self.blocks]


@dataclass(frozen=True)
class Mapping:
    """An input partition paired with an output partition of equal block sums"""

    input_partition: Partition
    output_partition: Partition

    def block_pairs(
        self, input_values: Sequence[int], output_values: Sequence[int]
    ) -> List[Tuple[FrozenSet[int], FrozenSet[int]]]:
        """
        Pair each input block with the output block of the same sum

        Input blocks are taken in canonical order and each claims the first
        unused output block with an equal sum, so ties resolve by original
        index order.
        """
        available: Dict[int, List[FrozenSet[int]]] = {}
        for block, total in zip(
            self.output_partition.blocks, self.output_partition.block_sums(output_values)
        ):
            available.setdefault(total, []).append(block)

        pairs = []
        for block, total in zip(
            self.input_partition.blocks, self.input_partition.block_sums(input_values)
        ):
            candidates = available.get(total)
            if not candidates:
                raise ValueError(f"No output block with sum {total} left to pair")
            pairs.append((block, candidates.pop(0)))
        return pairs

    def links(
        self, input_values: Sequence[int], output_values: Sequence[int]
    ) -> FrozenSet[Tuple[int, int]]:
        """Every (input index, output index) joined by a paired block"""
        return frozenset(
            (i, o)
            for in_block, out_block in self.block_pairs(input_values, output_values)
            for i in in_block
            for o in out_block
        )


def partitions_of(indices: Iterable[int]) -> Iterator[Partition]:
    """
    Lazily yield every set partition of ``indices``

    Yields Bell(n) partitions, each exactly once. Partitions of the first n-1
    indices are extended by placing the last index into each existing block in
    turn, or into a new singleton block.
    """
    items = list(indices)
    if len(set(items)) != len(items):
        raise ValueError("indices must be distinct")
    for blocks in _partition_blocks(items):
        yield Partition.from_blocks(blocks)


def _partition_blocks(items: List[int]) -> Iterator[List[Tuple[int, ...]]]:
    if not items:
        yield []
        return

    last = items[-1]
    for blocks in _partition_blocks(items[:-1]):
        for i in range(len(blocks)):
            yield blocks[:i] + [blocks[i] + (last,)] + blocks[i + 1:]
        yield blocks + [(last,)]


def bell_number(n: int) -> int:
    """Number of set partitions of an n-element set (Bell triangle)"""
    if n < 0:
        raise ValueError("n must be non-negative")
    row = [1]
    for _ in range(n):
        next_row = [row[-1]]
        for value in row:
            next_row.append(next_row[-1] + value)
        row = next_row
    return row[0]
