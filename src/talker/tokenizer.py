""" Tokenizer over a stack of script buffers.

The top of the stack is the buffer currently being parsed. #includes push a
new buffer and the parent resumes when the child is popped.

Tokens are separated by whitespace. "//" starts a comment running to the end
of the line, double quoted strings are single tokens (without the quotes) and
each of { } ( ) ' is always a token on its own.
"""

import re
from typing import Optional

BREAK_CHARS = "{}()'"
WORD_RE = re.compile(r"[^\x00-\x20{}()']+")

def next_token(buffer:str, pos:int) -> tuple[Optional[str], int]:
    """ Reads one token from buffer starting at pos.

    Returns the token (None at the end of the buffer) and the position just
    past it. """
    n = len(buffer)
    while True:
        while pos < n and buffer[pos] <= " ":
            pos += 1
        if pos >= n:
            return None, n
        if buffer.startswith("//", pos):
            newline = buffer.find("\n", pos)
            pos = n if newline == -1 else newline
            continue
        break

    c = buffer[pos]
    if c == '"':
        end = buffer.find('"', pos+1)
        if end == -1:
            # unterminated string runs to the end of the buffer
            return buffer[pos+1:], n
        return buffer[pos+1:end], end+1

    if c in BREAK_CHARS:
        return c, pos+1

    m = WORD_RE.match(buffer, pos)
    assert m
    return m.group(0), m.end()

class ScriptEntry:
    def __init__(self, name:str, buffer:str) -> None:
        self.name = name
        self.buffer = buffer
        self.pos = 0
        self.token_count = 0

class ScriptStack:
    def __init__(self) -> None:
        self.entries:list[ScriptEntry] = []
        self.included_files:set[str] = set()
        self.token = ""
        self._unget = False

    def __len__(self) -> int:
        return len(self.entries)

    def reset(self) -> None:
        self.entries.clear()
        self.included_files.clear()
        self.token = ""
        self._unget = False

    def push_script(self, name:str, buffer:str) -> None:
        self.included_files.add(name.casefold())
        self.entries.append(ScriptEntry(name, buffer))

    def pop_script(self) -> None:
        assert len(self.entries) >= 1
        if not self.entries:
            return
        self.entries.pop()
        # a pushed back token belonged to the buffer we just finished
        self._unget = False

    def is_included(self, name:str) -> bool:
        return name.casefold() in self.included_files

    @property
    def current_script(self) -> str:
        if not self.entries:
            return ""
        return self.entries[-1].name

    @property
    def current_token(self) -> int:
        if not self.entries:
            return -1
        return self.entries[-1].token_count

    def parse_token(self) -> bool:
        """ Advances to the next token in the current buffer.

        Returns False, with token set to "", once the buffer is exhausted. """
        if self._unget:
            self._unget = False
            return True

        if not self.entries:
            self.token = ""
            return False

        entry = self.entries[-1]
        token, entry.pos = next_token(entry.buffer, entry.pos)
        entry.token_count += 1
        if token is None:
            self.token = ""
            return False
        self.token = token
        return True

    def unget(self) -> None:
        """ Pushes the current token back, it's delivered again by the next
        parse_token. Only one token of pushback is supported. """
        self._unget = True

    def token_waiting(self) -> bool:
        """ Is there another token before the end of the current line? """
        if self._unget:
            return True

        if not self.entries:
            return False

        entry = self.entries[-1]
        buffer = entry.buffer
        p = entry.pos
        while p < len(buffer) and buffer[p] != "\n":
            if buffer.startswith("//", p):
                return False
            if not buffer[p].isspace():
                return True
            p += 1

        return False
