# retro_flow_tracer/core/symbols.py
"""
Core Layer (シンボルテーブル)

1回の実行の間だけ存在する、追記専用のシンボルテーブルを定義します。
"""
from typing import Dict, Iterable, Iterator, List, Optional

from retro_flow_tracer.common.types import Symbol


# @intent:responsibility (名前, アドレス) の組を挿入順に保持します。
# @intent:rationale 同一アドレスに複数のシンボルが存在してもマージしません。
#                  ヒント由来の名前と自動生成名が共存し、検索は挿入順で最初のものを返します。
class SymbolTable:
    """
    追記専用のシンボルテーブル。
    ヒントから生成され、エンジンによって分岐先が追加され、描画時に参照されます。
    """
    def __init__(self, symbols: Iterable[Symbol] = ()):
        self._symbols: List[Symbol] = []
        self._by_address: Dict[int, List[Symbol]] = {}
        for symbol in symbols:
            self.add(symbol.name, symbol.address)

    def add(self, name: str, address: int) -> Symbol:
        symbol = Symbol(name, address & 0xFFFF)
        self._symbols.append(symbol)
        self._by_address.setdefault(symbol.address, []).append(symbol)
        return symbol

    # @intent:responsibility 指定アドレスの最初のシンボルを返します。
    def find(self, address: int) -> Optional[Symbol]:
        matches = self._by_address.get(address)
        return matches[0] if matches else None

    # @intent:responsibility 指定アドレスの全シンボルを挿入順に返します。
    def at(self, address: int) -> List[Symbol]:
        return list(self._by_address.get(address, ()))

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)
