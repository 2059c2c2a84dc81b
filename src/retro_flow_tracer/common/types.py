"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用される汎用的な型などを定義します。
"""
from typing import FrozenSet, List, NamedTuple


# @intent:data_structure シンボル名とアドレスの組。
# Loader, Config, Engine, Renderer など複数のレイヤーで共通して使用されます。
class Symbol(NamedTuple):
    name: str
    address: int  # 16bit


# @intent:data_structure 外部から与えられる解析ヒント。エンジンからは読み取り専用です。
class Hints(NamedTuple):
    symbols: List[Symbol]
    nonreturns: FrozenSet[int]
