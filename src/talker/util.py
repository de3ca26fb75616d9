""" Utility methods broadly applicable across the codebase. """

from __future__ import annotations

import sys
import re
import pdb
import logging
from typing import Any

logger = logging.getLogger(__name__)

def fullname(o:Any) -> str:
    # from https://stackoverflow.com/a/2020083/553580
    # o.__module__ + "." + o.__class__.__qualname__ is an example in
    # this context of H.L. Mencken's "neat, plausible, and wrong."
    # Python makes no guarantees as to whether the __module__ special
    # attribute is defined, so we take a more circumspect approach.
    # Alas, the module name is explicitly excluded from __qualname__
    # in Python 3.

    if isinstance(o, type):
        klass = o
    else:
        klass = o.__class__

    module = klass.__module__
    if module is None or module == str.__class__.__module__:
        return klass.__qualname__  # Avoid reporting __builtin__
    else:
        return module + '.' + klass.__qualname__

RE_FLOAT_PREFIX = re.compile(r'\s*[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?')
RE_INT_PREFIX = re.compile(r'\s*[+-]?[0-9]+')

def atof(s:str) -> float:
    """ Parses the longest numeric prefix of s, like C's strtof.

    Script values are routinely things like "30", "2.5" or "[enum::key]" and
    anything that isn't a number reads as 0.0 rather than raising.

    e.g. "3.5abc" => 3.5, "abc" => 0.0, "" => 0.0
    """
    m = RE_FLOAT_PREFIX.match(s)
    if not m:
        return 0.
    return float(m.group(0))

def atoi(s:str) -> int:
    """ Parses the longest integer prefix of s, like C's atoi. """
    m = RE_INT_PREFIX.match(s)
    if not m:
        return 0
    return int(m.group(0))

def clip(x:float, min_x:float, max_x:float) -> float:
    # numpy.clip is sloooow
    return max(min_x, min(max_x, x))

def indent(depth:int, text:str) -> str:
    return " "*(3*depth) + text

class PDBManager:
    def __init__(self) -> None:
        self.logger = logging.getLogger(fullname(self))

    def __enter__(self) -> PDBManager:
        self.logger.info("entering PDBManager")

        return self

    def __exit__(self, e:Any, m:Any, tb:Any) -> None:
        self.logger.info("exiting PDBManager")
        if e is not None:
            self.logger.info(f'handling exception {e} {m}')
            print(m.__repr__(), file=sys.stderr)
            pdb.post_mortem(tb)
