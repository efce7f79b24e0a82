from dataclasses import dataclass, field
from datetime import timedelta

from rich.console import Console
from rich.pretty import pprint

from flagmaker import *

__prog__ = "flagmaker-demo"


@dataclass
class Socket:
    read_timeout: timedelta = field(default=timedelta(milliseconds=10), metadata={"yaml": "read_timeout"})
    buffer: uint16 = 4096


@dataclass
class Network:
    hosts: list[str] = field(default_factory=lambda: ["localhost"])
    socket: Ref[Socket] | None = None


@dataclass
class Config:
    verbose: bool = False
    level: int8 = 0
    network: Network = field(default_factory=Network)


if __name__ == '__main__':
    console = Console()
    config = Config()
    maker = FlagMaker(name=__prog__)

    console.print(maker.define(config))
    try:
        leftover = maker.parse_args(config)
    except FlagException as fault:
        Console(stderr=True).print(fault)
        raise SystemExit(2)
    pprint(config)
    pprint(leftover)
