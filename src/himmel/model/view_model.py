from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class SectionKind(Enum):
    ELF_SUMMARY = "elf_summary"
    DEBUG_INFO = "debug_info"
    COREDUMP = "coredump"
    RAW_JSON = "raw_json"


@dataclass(frozen=True)
class ViewField:
    label: str
    value: str


@dataclass(frozen=True)
class MemberRow:
    """
    One member of a type definition. `members` holds the rows of the member's own type, down to
    the configured depth; `truncated` is set where the nesting was cut off.
    """

    name: str
    offset: str
    type_name: str
    members: Tuple["MemberRow", ...] = ()
    truncated: bool = False


@dataclass(frozen=True)
class ViewItem:
    title: str
    badges: Tuple[str, ...] = ()
    details: Tuple[ViewField, ...] = ()
    members: Tuple[MemberRow, ...] = ()
    truncated: bool = False


@dataclass(frozen=True)
class ViewSubsection:
    title: str
    count: int
    items: Tuple[ViewItem, ...]


@dataclass(frozen=True)
class ViewSection:
    """
    One block of the results panel, in display order.

    :ivar fields: labelled values (ELF summary)
    :ivar badges: short tags shown as a row (section names)
    :ivar subsections: grouped item lists (debug info, coredump threads)
    :ivar body: preformatted text (raw JSON)
    """

    kind: SectionKind
    title: str
    fields: Tuple[ViewField, ...] = ()
    badges: Tuple[str, ...] = ()
    subsections: Tuple[ViewSubsection, ...] = ()
    body: str = ""


@dataclass(frozen=True)
class DemoEntryView:
    """One selectable build of a demo program."""

    program: str
    arch: str
    size: str


@dataclass(frozen=True)
class DemoProgramView:
    """A demo program with its builds, in catalog order."""

    program: str
    display_name: str
    description: str
    entries: Tuple[DemoEntryView, ...]
