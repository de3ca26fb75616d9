""" Compiles criterion value specs into comparison predicates.

A value spec is what an author writes after a criterion key, e.g.

    health      "<30"
    enemies     ">=2,<5"
    classname   "!npc_zombie"
    state       "[NPCState::Combat]"

Clauses are comma separated. Within a clause ">" and "<" select a range
bound, "=" makes the bound inclusive and "!" negates an equality test. All
other characters make up the literal. Literals of the form "[Group::Key]" are
resolved through the enumeration table when the matcher is compiled.
"""

import logging
from typing import Callable, Optional

from talker import util

logger = logging.getLogger(__name__)

# returns the enumeration value and whether it was found
EnumerationLookup = Callable[[str], tuple[float, bool]]

class Matcher:
    def __init__(self) -> None:
        self.valid = False
        self.is_numeric = False
        self.not_equal = False
        self.use_min = False
        self.min_equals = False
        self.use_max = False
        self.max_equals = False
        self.min_val = 0.
        self.max_val = 0.

        # the literal after enumeration resolution
        self.token = ""
        # the literal as written
        self.raw_token = ""

    @property
    def is_range(self) -> bool:
        return self.use_min or self.use_max

    def describe(self) -> str:
        if not self.valid:
            return "invalid!"

        parts = []
        if self.use_min:
            parts.append(f'>{"=" if self.min_equals else ""}{self.min_val:.3f}')
        if self.use_max:
            parts.append(f'<{"=" if self.max_equals else ""}{self.max_val:.3f}')
        if parts:
            return " and ".join(parts)

        if self.not_equal:
            return f'!={self.token}'

        return f'=={self.token}'

    def __repr__(self) -> str:
        return f'Matcher({self.describe()})'

def appears_to_be_a_number(token:str) -> bool:
    """ Nonzero floats are numbers, and so is any run of "0"s.

    Note that an empty token counts as a number, which means it can only
    ever match a numeric zero. """
    if util.atof(token) != 0.:
        return True
    return all(c == "0" for c in token)

def resolve_token(raw_token:str, lookup_enumeration:EnumerationLookup) -> str:
    if not raw_token.startswith("["):
        return raw_token

    value, found = lookup_enumeration(raw_token)
    if not found:
        logger.warning(f'No such enumeration "{raw_token}"')
        return raw_token

    return f'{value:f}'

def compute_matcher(value:Optional[str], lookup_enumeration:EnumerationLookup) -> Matcher:
    matcher = Matcher()
    if value is None:
        return matcher

    token = ""
    raw_token = ""
    for clause in value.split(","):
        gt = lt = eq = nt = False
        raw = []
        for c in clause:
            if c == ">":
                if lt:
                    logger.warning(f'matcher "{value}" clause "{clause}" has both ">" and "<"')
                gt = True
            elif c == "<":
                if gt:
                    logger.warning(f'matcher "{value}" clause "{clause}" has both ">" and "<"')
                lt = True
            elif c == "=":
                eq = True
            elif c == "!":
                nt = True
            else:
                raw.append(c)

        raw_token = "".join(raw)
        token = resolve_token(raw_token, lookup_enumeration)

        if gt:
            matcher.use_min = True
            matcher.min_equals = eq
            matcher.min_val = util.atof(token)
            matcher.is_numeric = True
        elif lt:
            matcher.use_max = True
            matcher.max_equals = eq
            matcher.max_val = util.atof(token)
            matcher.is_numeric = True
        else:
            if matcher.is_range:
                logger.warning(f'matcher "{value}" mixes range and equality clauses, ignoring "{clause}"')
                continue
            matcher.not_equal = nt
            matcher.is_numeric = appears_to_be_a_number(token)

    matcher.token = token
    matcher.raw_token = raw_token
    matcher.valid = True
    return matcher

def compare_using_matcher(set_value:str, matcher:Matcher, lookup_enumeration:EnumerationLookup) -> bool:
    if not matcher.valid:
        return False

    if set_value.startswith("["):
        v, _ = lookup_enumeration(set_value)
    else:
        v = util.atof(set_value)

    if matcher.is_range:
        if matcher.use_min:
            if matcher.min_equals:
                if v < matcher.min_val:
                    return False
            elif v <= matcher.min_val:
                return False

        if matcher.use_max:
            if matcher.max_equals:
                if v > matcher.max_val:
                    return False
            elif v >= matcher.max_val:
                return False

        # had one or both bounds and met them
        return True

    if matcher.not_equal:
        if matcher.is_numeric:
            return v != util.atof(matcher.token)
        return set_value.casefold() != matcher.token.casefold()

    if matcher.is_numeric:
        # an empty value means the fact is missing entirely, which should
        # not match "0"
        if not set_value:
            return False
        return v == util.atof(matcher.token)

    return set_value.casefold() == matcher.token.casefold()
