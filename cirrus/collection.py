"""
cirrus/collection.py
-----------------------------------------------------------------------------
The ordered file collection owned by an audit session.

Every mutation builds a new list and swaps it in as a whole, so readers
never observe a half-applied change.  ``snapshot()`` hands out an immutable
tuple; because assets are frozen models, a snapshot taken at submission
time is unaffected by later renames, removals or additions.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from cirrus.schema import CodeAsset


class FileCollection:
    """Ordered sequence of ``CodeAsset``; insertion order is significant."""

    def __init__(self, assets: Iterable[CodeAsset] = ()) -> None:
        self._assets: list[CodeAsset] = list(assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self) -> Iterator[CodeAsset]:
        return iter(tuple(self._assets))

    def __getitem__(self, index: int) -> CodeAsset:
        return self._assets[index]

    def __repr__(self) -> str:
        return f"FileCollection({[a.name for a in self._assets]!r})"

    def snapshot(self) -> tuple[CodeAsset, ...]:
        """Return an immutable copy of the current contents."""
        return tuple(self._assets)

    def extend(self, assets: Iterable[CodeAsset]) -> None:
        """Append *assets* in order."""
        self._assets = [*self._assets, *assets]

    def append(self, asset: CodeAsset) -> None:
        self.extend((asset,))

    def rename(self, index: int, new_name: str) -> CodeAsset:
        """
        Replace the asset at *index* with a copy carrying *new_name*.

        Raises ``IndexError`` for an out-of-range index (negative indices are
        rejected too) and ``ValueError`` for an empty name.
        """
        self._check_index(index)
        if not new_name:
            raise ValueError("asset name must not be empty")
        renamed = CodeAsset(name=new_name, content=self._assets[index].content)
        updated = list(self._assets)
        updated[index] = renamed
        self._assets = updated
        return renamed

    def remove(self, index: int) -> CodeAsset:
        """Delete the asset at *index*; later assets shift down by one."""
        self._check_index(index)
        removed = self._assets[index]
        self._assets = [a for i, a in enumerate(self._assets) if i != index]
        return removed

    def clear(self) -> None:
        self._assets = []

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._assets):
            raise IndexError(f"asset index {index} out of range (collection has {len(self)})")
