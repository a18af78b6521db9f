import logging

from rich.logging import RichHandler
from rich.pretty import pprint

from clitree import *

__styles__ = {
    "program-name": "bold #FFD600",
}


def configure(context):
    level = logging.DEBUG if context.value("debug") else logging.WARNING
    logging.basicConfig(level=level, format="%(message)s", handlers=[RichHandler(rich_tracebacks=True)])


@command(
    "serve, s",
    usage="start the server",
    examples=("demo serve --port 9000", "APP_PORT=9090 demo serve"),
    flags=[
        Flag("p, port", type=Kind.UINT16, default="8080", envvar="APP_PORT", usage="port to listen on"),
        Flag("b, bind", type=Kind.IP, default="127.0.0.1", placeholder="address", usage="address to bind"),
        Flag("timeout", type=Kind.DURATION, default="30s", usage="idle timeout"),
        Flag("allow", type=Kind.IPNETS, usage="allowed networks (repeatable)"),
    ],
)
def serve(context):
    """Serve requests until interrupted."""
    pprint({flag.name: flag.value for flag in context.flags})


@command("stop", usage="stop the server")
def stop(context):
    pprint({"stopping": context.args or "all"})


app = App(
    "demo",
    version="1.0.0",
    usage="clitree demonstration",
    authors=("clitree contributors",),
    build_info='time:"Sat May 13 19:53:08 UTC 2017" branch:master commit:320279c patches:1234',
    flags=[Flag("d, debug", type=bool, usage="verbose logging")],
    commands=[serve, stop],
    on_app_initialized=configure,
    shell=True,
    fancy=True,
    colorful=True,
)


if __name__ == '__main__':
    invoke(app)
