"""
Projection of an `AnalysisResult` into the ordered sections of the results panel.

Rendering is a pure function of the result: the same result always yields the same sections,
and nothing here mutates the result.
"""
from typing import Iterable, List, Sequence, Set, Tuple

from himmel.model.result_model import (
    AnalysisResult,
    CoredumpInfo,
    ElfInfo,
    FunctionInfo,
    MemberInfo,
    TypeInfo,
    VariableInfo,
)
from himmel.model.view_model import (
    DemoEntryView,
    DemoProgramView,
    MemberRow,
    SectionKind,
    ViewField,
    ViewItem,
    ViewSection,
    ViewSubsection,
)
from himmel.service.acquisition import DEMO_BINARIES, DemoBinary, group_demo_binaries
from himmel.service.serialization import ResultSerializationService
from himmel.service.serialization.pjson import DEFAULT_MAX_TYPE_DEPTH

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_address(address: int) -> str:
    """Hexadecimal with the decimal value alongside, e.g. `0x401000 (4198400)`."""
    return f"0x{address:x} ({address})"


def format_file_size(size: int) -> str:
    """Human-readable size in 1024-based units, with at most two decimals."""
    exponent = 0
    while exponent < len(_SIZE_UNITS) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    scaled = round(size / 1024**exponent, 2)
    return f"{scaled:g} {_SIZE_UNITS[exponent]}"


def render_demo_catalog(
    binaries: Iterable[DemoBinary] = DEMO_BINARIES,
) -> Tuple[DemoProgramView, ...]:
    """The demo catalog grouped by program, programs and builds in catalog order."""
    programs = []
    for program, builds in group_demo_binaries(binaries).items():
        programs.append(
            DemoProgramView(
                program,
                builds[0].display_name,
                builds[0].description,
                tuple(DemoEntryView(build.program, build.arch, build.size) for build in builds),
            )
        )
    return tuple(programs)


class ResultsRenderer:
    """
    Builds the view sections for a result, in this order:

    1. ELF summary, if the result has `elf_info`
    2. DWARF debug information, if any of functions, variables or types is non-empty
    3. Coredump threads, if the result has `coredump_info`
    4. The raw JSON of the result, always last
    """

    def __init__(
        self,
        serializer: ResultSerializationService,
        max_type_depth: int = DEFAULT_MAX_TYPE_DEPTH,
    ):
        self._serializer = serializer
        self._max_type_depth = max_type_depth

    def render(self, result: AnalysisResult) -> List[ViewSection]:
        sections = []
        if result.elf_info is not None:
            sections.append(self._render_elf_summary(result.elf_info))
            if result.elf_info.has_debug_info():
                sections.append(self._render_debug_info(result.elf_info))
        if result.coredump_info is not None:
            sections.append(self._render_coredump(result.coredump_info))
        sections.append(self._render_raw_json(result))
        return sections

    ##################################################################################
    #                           ELF SUMMARY
    ##################################################################################

    def _render_elf_summary(self, elf_info: ElfInfo) -> ViewSection:
        return ViewSection(
            SectionKind.ELF_SUMMARY,
            "ELF Binary Information",
            fields=(
                ViewField("Architecture", elf_info.architecture),
                ViewField("File Type", elf_info.file_type),
                ViewField("Entry Point", format_address(elf_info.entry_point)),
                ViewField("Endianness", elf_info.endianness),
            ),
            badges=tuple(elf_info.sections),
        )

    ##################################################################################
    #                           DEBUG INFO
    ##################################################################################

    def _render_debug_info(self, elf_info: ElfInfo) -> ViewSection:
        subsections = []
        if elf_info.functions:
            subsections.append(
                ViewSubsection(
                    "Functions",
                    len(elf_info.functions),
                    tuple(self._render_function(function) for function in elf_info.functions),
                )
            )
        if elf_info.variables:
            subsections.append(
                ViewSubsection(
                    "Variables",
                    len(elf_info.variables),
                    tuple(self._render_variable(variable) for variable in elf_info.variables),
                )
            )
        if elf_info.types:
            subsections.append(
                ViewSubsection(
                    "Type Definitions",
                    len(elf_info.types),
                    tuple(self._render_type(type_info) for type_info in elf_info.types),
                )
            )
        return ViewSection(
            SectionKind.DEBUG_INFO, "DWARF Debug Information", subsections=tuple(subsections)
        )

    def _render_function(self, function: FunctionInfo) -> ViewItem:
        badges = [format_address(function.address)]
        if function.size is not None:
            badges.append(f"{function.size} bytes")
        details = []
        if function.parameters:
            details.append(
                ViewField(
                    "Parameters",
                    ", ".join(
                        f"{parameter.name}: {parameter.type_info.name}"
                        for parameter in function.parameters
                    ),
                )
            )
        if function.return_type is not None:
            details.append(ViewField("Returns", function.return_type.name))
        return ViewItem(function.name, tuple(badges), tuple(details))

    def _render_variable(self, variable: VariableInfo) -> ViewItem:
        badges = [variable.scope.value]
        if variable.address is not None:
            badges.append(format_address(variable.address))
        if variable.offset is not None:
            badges.append(f"offset: {variable.offset}")
        type_info = variable.type_info
        type_description = f"{type_info.name} ({type_info.kind.value})"
        if type_info.size is not None:
            type_description += f", {type_info.size} bytes"
        return ViewItem(variable.name, tuple(badges), (ViewField("Type", type_description),))

    def _render_type(self, type_info: TypeInfo) -> ViewItem:
        badges = [type_info.kind.value]
        if type_info.size is not None:
            badges.append(f"{type_info.size} bytes")
        members, truncated = self._render_members(type_info, {id(type_info)}, 1)
        return ViewItem(type_info.name, tuple(badges), members=members, truncated=truncated)

    def _render_members(
        self, type_info: TypeInfo, ancestors: Set[int], depth: int
    ) -> Tuple[Tuple[MemberRow, ...], bool]:
        """
        Rows for the members of `type_info`, recursing into each member's type. Nesting stops at
        the configured depth, and at any type already among its own ancestors.

        :return: the rows, and whether anything was cut off at this level
        """
        if not type_info.members:
            return (), False
        if depth >= self._max_type_depth:
            return (), True
        rows = tuple(self._render_member(member, ancestors, depth) for member in type_info.members)
        return rows, False

    def _render_member(self, member: MemberInfo, ancestors: Set[int], depth: int) -> MemberRow:
        member_type = member.type_info
        if id(member_type) in ancestors:
            return MemberRow(member.name, str(member.offset), member_type.name, truncated=True)
        nested, truncated = self._render_members(
            member_type, ancestors | {id(member_type)}, depth + 1
        )
        return MemberRow(member.name, str(member.offset), member_type.name, nested, truncated)

    ##################################################################################
    #                           COREDUMP
    ##################################################################################

    def _render_coredump(self, coredump_info: CoredumpInfo) -> ViewSection:
        threads = tuple(
            ViewItem(
                f"Thread {thread.thread_id}", (f"{thread.register_bytes_length} register bytes",)
            )
            for thread in coredump_info.threads
        )
        return ViewSection(
            SectionKind.COREDUMP,
            "Coredump Information",
            subsections=(ViewSubsection("Threads", len(threads), threads),),
        )

    ##################################################################################
    #                           RAW JSON
    ##################################################################################

    def _render_raw_json(self, result: AnalysisResult) -> ViewSection:
        return ViewSection(
            SectionKind.RAW_JSON,
            "Raw JSON Output",
            body=self._serializer.to_json(result, AnalysisResult, indent=True),
        )


def render_text(sections: Sequence[ViewSection]) -> str:
    """Plain-text form of rendered sections, for terminals and logs."""
    lines: List[str] = []
    for section in sections:
        lines.append(f"== {section.title} ==")
        for view_field in section.fields:
            lines.append(f"{view_field.label}: {view_field.value}")
        if section.badges:
            lines.append(f"Sections ({len(section.badges)}): {' '.join(section.badges)}")
        for subsection in section.subsections:
            lines.append(f"-- {subsection.title} ({subsection.count}) --")
            for item in subsection.items:
                lines.extend(_item_lines(item))
        if section.body:
            lines.append(section.body)
        lines.append("")
    return "\n".join(lines)


def _item_lines(item: ViewItem) -> List[str]:
    header = item.title
    if item.badges:
        header += f" [{', '.join(item.badges)}]"
    lines = [header]
    for detail in item.details:
        lines.append(f"  {detail.label}: {detail.value}")
    if item.members:
        lines.append("  Members:")
        lines.extend(_member_lines(item.members, 2))
    if item.truncated:
        lines.append("    ...")
    return lines


def _member_lines(rows: Sequence[MemberRow], indent: int) -> List[str]:
    lines = []
    padding = "  " * indent
    for row in rows:
        lines.append(f"{padding}{row.name} (offset: {row.offset}): {row.type_name}")
        lines.extend(_member_lines(row.members, indent + 1))
        if row.truncated:
            lines.append(f"{padding}  ...")
    return lines
