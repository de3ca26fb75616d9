""" File system collaborator used to load rule scripts and #includes. """

import abc
import os.path
import logging
from typing import Optional

from talker import util

class AbstractFileSystem(abc.ABC):
    @abc.abstractmethod
    def read_file(self, path:str) -> Optional[str]:
        """ Returns the contents of path or None if it can't be read. """
        ...

class DirectoryFileSystem(AbstractFileSystem):
    """ Resolves script paths relative to a root directory. """

    def __init__(self, root:str=".") -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.root = root

    def resolve(self, path:str) -> str:
        return os.path.join(self.root, path)

    def read_file(self, path:str) -> Optional[str]:
        full_path = self.resolve(path)
        try:
            with open(full_path, "rt", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as e:
            self.logger.debug(f'could not read {full_path}: {e}')
            return None
