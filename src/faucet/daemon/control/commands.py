"""Typed chat commands and the text parser producing them."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Union


@dataclass(frozen=True)
class Start:
    header: str = ""


@dataclass(frozen=True)
class ListEntries:
    pass


@dataclass(frozen=True)
class Fuse:
    beneficiary: str
    amount: int  # whole units
    implicit: bool = False


@dataclass(frozen=True)
class Cancel:
    sequence_number: int


@dataclass(frozen=True)
class BadUsage:
    reason: str


Command = Union[Start, ListEntries, Fuse, Cancel, BadUsage]

# ASCII digits only; str.isdigit() also accepts superscripts int() rejects
_DIGITS = re.compile(r"[0-9]+")

FUSE_USAGE = "example: /fuse z1qzyzqtszv6fnw56rpnlq0npqt70tux0cl0yn5k 10"


def parse_command(text: str, beneficiary_pattern: str, default_amount: int) -> Command:
    beneficiary_re = re.compile(beneficiary_pattern)
    tokens = text.split()
    if not tokens:
        return Start(header="Unknown command ''\n\n")

    head = tokens[0]
    if head == "/start":
        return Start()
    if head == "/list":
        return ListEntries()
    if head == "/fuse":
        return _parse_fuse(tokens, beneficiary_re)

    if head.startswith("/") and _DIGITS.fullmatch(head[1:]) and int(head[1:]) > 0:
        return Cancel(sequence_number=int(head[1:]))

    if beneficiary_re.match(head):
        return Fuse(beneficiary=head, amount=default_amount, implicit=True)

    return Start(header=f"Unknown command '{head}'\n\n")


def _parse_fuse(tokens: list[str], beneficiary_re: re.Pattern) -> Command:
    if len(tokens) != 3:
        return BadUsage(f"Incorrect number of parameters. {FUSE_USAGE}")
    beneficiary, raw_amount = tokens[1], tokens[2]
    if not beneficiary_re.match(beneficiary):
        return BadUsage(f"Invalid address. {FUSE_USAGE}")
    if not _DIGITS.fullmatch(raw_amount):
        return BadUsage(f"Amount must be a whole number. {FUSE_USAGE}")
    return Fuse(beneficiary=beneficiary, amount=int(raw_amount))
