from dataclasses import dataclass, field
from typing import List, Optional

@dataclass
class SymbolHint:
    name: str
    address: int

@dataclass
class ProjectConfig:
    rom: Optional[str] = None      # .nes イメージ
    hints: Optional[str] = None    # ヒントファイル
    output: Optional[str] = None   # リスティング出力先 (None なら標準出力)
    symbols: List[SymbolHint] = field(default_factory=list)
    nonreturns: List[int] = field(default_factory=list)
