"""
clitree default display collaborators (rich based).

- show_help(context): usage line, descriptions, commands table, flags,
  examples and see-also of the context's level. Printed on stderr when the
  level reported faults, stdout otherwise.
- show_version(app): "name — version", build information and authors.
- show_error(context, fault): surfaces a fault with the app's runtime switches
  (raise, or print and exit(1) in shell mode; soft faults only print).

Customization
- Define a mapping named __styles__ in __main__ to override palette entries.
- Styles apply only when the app is colorful; fancy wraps output in a panel.
- App(show_help=..., show_version=..., show_error=...) replaces these
  functions; Command(show_help=...) replaces help for one command.
"""
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .faults import *


def _painter(app, palette):
    """
    return (styler, text) helpers bound to the app's colorful switch.
    """
    styles = defaultdict(str, palette | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if app.colorful else ""

    def text(fragment, style=""):
        # Normalize to Text; non-colorful mode drops styles
        if not fragment:
            return Text("")
        if not app.colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    return styler, text


def _flagnames(flag):
    return ", ".join(("-" if len(name) == 1 else "--") + name for name in flag.names)


def show_help(context, /):
    """
    Render help for the level of context.

    Palette keys
    - usage-label, program-name, usage-section, description-section
    - children-title, children-table, children, children-description
    - group-label, flag-name, placeholder, flag-description, default, envvar
    - examples-label, examples-dot, example, see-also-label, see-also
    - panel-title, panel-subtitle
    """
    app = context.app
    node = context.command or app
    console = Console(stderr=bool(context.faults))
    styler, text = _painter(app, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",
        "description-section": "italic #A3A3A3",

        # === Children table ===
        "children-title": "bold #FFFFFF",
        "children-table": "#4B5563",
        "children": "bold #36C5F0",
        "children-description": "#9CA3AF",

        # === Flags ===
        "group-label": "bold #FFFFFF",
        "flag-name": "bold #22C55E",
        "placeholder": "bold #FFD600",
        "flag-description": "#9CA3AF",
        "default": "#737373",
        "envvar": "italic #737373",

        # === Examples / see also ===
        "examples-label": "bold #22C55E",
        "examples-dot": "#22C55E dim",
        "example": "#E5E7EB",
        "see-also-label": "bold #00E6FF",
        "see-also": "#737373",

        # === Fancy panel ===
        "panel-title": "bold #FF4D94",
        "panel-subtitle": "#9CA3AF",
    })

    renders = []
    width = console.width - 4 * app.fancy
    flags = [flag for flag in context.flags if not flag.hidden]
    commands = [command for command in context.commands if not command.hidden]

    # Usage line: explicit text wins, otherwise synthesized from the level
    usage = Text()
    usage.append("usage", styler("usage-label")).append(": ")
    if node.usage_text:
        usage.append(text(node.usage_text, styler("usage-section")))
    else:
        usage.append(text(context.name, styler("program-name")))
        if flags:
            usage.append(" [flags]")
        if commands:
            usage.append(" <command>")
        usage.append(" [arguments...]")
    renders.append(usage.append("\n"))

    if node.usage:
        renders.append(text(node.usage, styler("usage-section")).append("\n"))
    if node.description:
        renders.append(text(node.description, styler("description-section")).append("\n"))

    if commands:
        table = Table(
            "name", "help",
            title=text("commands" if context.command is None else "subcommands", styler("children-title")),
            width=int(width * (2 / 3)),
            box=ROUNDED,
            style=styler("children-table"),
            header_style=styler("children-title"),
        )
        for command in commands:
            if command.usage:
                help = text(command.usage, styler("children-description"))
            else:
                help = Text.assemble(
                    text("no description", styler("children-description")),
                    " — ",
                    text(f"run '{context.name} {command.name} --help' for details", styler("examples-label")),
                )
            table.add_row(text(", ".join(command.names), styler("children")), help)
        renders.append(table)

    if flags:
        section = Text()
        section.append(text("flags", styler("group-label"))).append(":\n")
        padding, indent = 2, 24
        for flag in flags:
            line = Text(" " * padding)
            line.append(text(_flagnames(flag), styler("flag-name")))
            if not flag.isbool:
                line.append(" ").append(text(flag.placeholder, styler("placeholder")))

            parts = [text(flag.usage, styler("flag-description"))] if flag.usage else []
            if defaults := tuple(filter(None, (flag.default,) if isinstance(flag.default, str) else flag.default or ())):
                parts.append(text(f"(default: {", ".join(defaults)})", styler("default")))
            if flag.envvars:
                parts.append(text(f"[${", $".join(flag.envvars)}]", styler("envvar")))
            descr = Text(" ").join(parts)

            if descr:
                # Hanging indent: description column starts at `indent`
                if len(line) >= indent:
                    line.append("\n").append(" " * indent)
                else:
                    line.append(" " * (indent - len(line)))
                wrapped = descr.wrap(console, max(width - indent, 16))
                for index, segment in enumerate(wrapped):
                    line.append(segment if index == 0 else Text("\n" + " " * indent) + segment)
            section.append(line).append("\n")
        renders.append(section)

    if node.examples:
        padding = len(dot := text(" • ", styler("examples-dot")))
        examples = Text()
        examples.append(text("examples", styler("examples-label"))).append(":\n")
        for example in map(lambda x: text(x, styler("example")), node.examples):
            for index, segment in enumerate(example.wrap(console, width - padding)):
                examples.append(dot if index == 0 else " " * padding).append(segment).append("\n")
        renders.append(examples)

    if node.see_also:
        see_also = Text()
        see_also.append(text("see also", styler("see-also-label"))).append(": ")
        see_also.append(text(node.see_also, styler("see-also")))
        renders.append(see_also)

    renderable = Group(*renders)
    if app.fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{context.name} HELP".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
            subtitle=text(app.version, styler("panel-subtitle")),
        )
    console.print(renderable)


def show_version(app, /):
    """
    Render version information.

    Layout
    - Header: "<name> — <version>".
    - Build info: one "label: value" line per non-empty field.
    - Authors: bulleted list.
    """
    console = Console()
    styler, text = _painter(app, {
        "program-name": "bold #FF4D94",
        "program-version": "bold #00E6FF",
        "build-label": "bold #FFFFFF",
        "build-section": "#9CA3AF",
        "authors-label": "bold #FFD600",
        "authors-dot": "#FFD600 dim",
        "author": "#E5E7EB",
        "panel-title": "bold #FF4D94",
    })

    renders = [Text(" — ").join((
        text(app.name, styler("program-name")),
        text(app.version or "0.0.0", styler("program-version")),
    ))]

    if info := app.build_info:
        for label, value in (
                ("built", info.timestamp),
                ("branch", info.git_branch),
                ("commit", info.git_commit),
                ("patches", info.git_rev_count),
                ("by", info.built_by),
        ):
            if value:
                line = Text()
                line.append(text(label, styler("build-label"))).append(": ")
                line.append(text(value, styler("build-section")))
                renders.append(line)

    if app.authors:
        padding = len(dot := text(" • ", styler("authors-dot")))
        authors = Text("\n")
        authors.append(text("authors", styler("authors-label"))).append(":\n")
        for author in map(lambda x: text(x, styler("author")), app.authors):
            for index, segment in enumerate(author.wrap(console, console.width - padding)):
                authors.append(dot if index == 0 else " " * padding).append(segment).append("\n")
        authors.rstrip()
        renders.append(authors)

    renderable = Group(*renders)
    if app.fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{app.name} VERSION".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )
    console.print(renderable)


def show_error(context, fault, /):
    """
    Surface fault with the app's runtime switches (see faults.trigger).

    Documentation registered for the fault code in __main__.__docs__ is attached.
    """
    options = context.app.runtime
    if (code := fault.options.get("code")) is not None and "docs" not in fault.options:
        if docs := getdoc(code):
            options["docs"] = docs
    trigger(fault, **options)


__all__ = (
    "show_help",
    "show_version",
    "show_error",
)
