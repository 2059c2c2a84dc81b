# retro_flow_tracer/core/tags.py
"""
Core Layer (バイト分類マップ)

プログラムコード領域の各オフセットが、未到達データ・命令先頭・命令の継続バイトの
いずれであるかを保持するデータ構造を定義します。
"""
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from retro_flow_tracer.core.errors import InstructionOverlap


# @intent:responsibility まだ分類されていないバイト。一度も到達しなければデータとして描画されます。
@dataclass(frozen=True)
class Unvisited:
    value: int


# @intent:responsibility デコードに成功した命令の先頭バイト。[offset, offset+length) を所有します。
@dataclass(frozen=True)
class InstructionHead:
    text: str  # 例: "JSR _func_9000"
    length: int
    unknown_target: bool = False


# @intent:responsibility 先行する InstructionHead に消費されたバイト。単独でデコードしてはなりません。
@dataclass(frozen=True)
class Continuation:
    owner: int  # 所有する命令先頭のオフセット


ByteTag = Union[Unvisited, InstructionHead, Continuation]


# @intent:responsibility オフセットごとのバイト分類状態を管理します。
# @intent:rationale 状態遷移は Unvisited -> InstructionHead/Continuation の一方向のみで、元に戻ることはありません。
class ByteTagMap:
    """
    プログラムコード領域と同じ長さを持つ分類マップ。
    初期状態では全オフセットが Unvisited(byte) です。
    base はオフセット0の絶対アドレスで、エラー報告にのみ使われます。
    """
    def __init__(self, data: bytes, base: int = 0):
        self._tags: List[ByteTag] = [Unvisited(b) for b in data]
        self._base = base

    def __len__(self) -> int:
        return len(self._tags)

    def __getitem__(self, offset: int) -> ByteTag:
        return self._tags[offset]

    def __iter__(self) -> Iterator[ByteTag]:
        return iter(self._tags)

    # @intent:responsibility 命令先頭を確定し、後続バイトを Continuation に遷移させます。
    # @intent:pre-condition [offset, offset+length) の全バイトが Unvisited である必要があります。
    def commit(self, offset: int, text: str, length: int, unknown_target: bool = False) -> InstructionHead:
        """
        offset に InstructionHead を書き込み、続く length-1 バイトを Continuation にします。
        いずれかのバイトが既に分類済みの場合は InstructionOverlap を送出し、何も変更しません。
        """
        if length < 1 or offset + length > len(self._tags):
            raise ValueError(f"Invalid instruction range: offset={offset}, length={length}")
        conflict = self.first_conflict(offset, length)
        if conflict is not None:
            raise InstructionOverlap(self._base + offset, self._base + conflict)

        head = InstructionHead(text=text, length=length, unknown_target=unknown_target)
        self._tags[offset] = head
        for i in range(offset + 1, offset + length):
            self._tags[i] = Continuation(owner=offset)
        return head

    # @intent:responsibility [offset, offset+length) のうち、既に分類済みの最初のオフセットを返します。
    def first_conflict(self, offset: int, length: int) -> Optional[int]:
        for i in range(offset, min(offset + length, len(self._tags))):
            if not isinstance(self._tags[i], Unvisited):
                return i
        return None

    def heads(self) -> Iterator[Tuple[int, InstructionHead]]:
        """
        (オフセット, InstructionHead) を昇順に列挙します。
        """
        for offset, tag in enumerate(self._tags):
            if isinstance(tag, InstructionHead):
                yield offset, tag
