"""
Typed form of the JSON document returned by the analysis engine.

The document is a tree: every `MemberInfo` and `VariableInfo` owns its `TypeInfo`, and nothing in
the graph refers back to an ancestor. Optional numeric fields are kept as `None` when the engine
did not report them; `None` means "unknown", never zero.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, NewType, Optional

U8 = NewType("U8", int)
U64 = NewType("U64", int)
I64 = NewType("I64", int)


##################################################################################
#                           DWARF TYPES
##################################################################################


class TypeKind(Enum):
    BASIC = "basic"
    STRUCT = "struct"
    ENUM = "enum"
    UNION = "union"
    POINTER = "pointer"
    ARRAY = "array"
    UNKNOWN = "unknown"

    @property
    def has_members(self) -> bool:
        """Whether the engine must report a `members` list for this kind."""
        return self in (TypeKind.STRUCT, TypeKind.ENUM, TypeKind.UNION)


class VariableScope(Enum):
    GLOBAL = "global"
    LOCAL = "local"
    PARAMETER = "parameter"


@dataclass
class TypeInfo:
    name: str
    size: Optional[U64]
    kind: TypeKind
    members: List["MemberInfo"] = field(default_factory=list)


@dataclass
class MemberInfo:
    name: str
    offset: U64
    type_info: TypeInfo


@dataclass
class VariableInfo:
    """
    A DWARF variable or formal parameter.

    `offset` is a frame offset; `None` (not reported) and `0` are different values.
    """

    name: str
    address: Optional[U64]
    offset: Optional[I64]
    type_info: TypeInfo
    scope: VariableScope


@dataclass
class FunctionInfo:
    name: str
    address: U64
    size: Optional[U64]
    parameters: List[VariableInfo]
    return_type: Optional[TypeInfo] = None


##################################################################################
#                           ELF / COREDUMP
##################################################################################


@dataclass
class ElfInfo:
    """
    Metadata of an ELF binary, plus the DWARF symbols if the binary carried debug info.

    :ivar sections: section names in the order they appear in the section header table
    """

    architecture: str
    entry_point: U64
    sections: List[str]
    file_type: str
    endianness: str
    functions: Optional[List[FunctionInfo]] = None
    variables: Optional[List[VariableInfo]] = None
    types: Optional[List[TypeInfo]] = None

    def has_debug_info(self) -> bool:
        return any((self.functions, self.variables, self.types))


@dataclass
class ThreadInfo:
    """
    One thread of a coredump. The register block is opaque; only its length is interpreted.
    """

    thread_id: U64
    registers: List[U8] = field(default_factory=list)

    @property
    def register_bytes_length(self) -> int:
        return len(self.registers)


@dataclass
class CoredumpInfo:
    threads: List[ThreadInfo]


@dataclass
class AnalysisResult:
    """
    Outcome of exactly one engine call. A new result replaces the previous one entirely.
    """

    elf_info: Optional[ElfInfo] = None
    coredump_info: Optional[CoredumpInfo] = None
    error: Optional[str] = None
