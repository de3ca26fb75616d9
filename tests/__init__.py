from typing import Optional
import logging

from talker import core, filesystem, precache, util

class MemoryFileSystem(filesystem.AbstractFileSystem):
    """ File system over a dict of path to contents, records reads. """

    def __init__(self, files:Optional[dict[str, str]]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.files:dict[str, str] = files if files is not None else {}
        self.reads:list[str] = []

    def read_file(self, path:str) -> Optional[str]:
        self.reads.append(path)
        return self.files.get(path)

class MonitoringPrecacher(precache.AbstractPrecacher):
    def __init__(self) -> None:
        self.scenes:list[str] = []
        self.sounds:list[str] = []
        self.touched:list[str] = []

    def precache_scene(self, path:str) -> None:
        self.scenes.append(path)

    def precache_sound(self, name:str) -> None:
        self.sounds.append(name)

    def touch_file(self, path:str) -> None:
        self.touched.append(path)

class RejectingFilter(core.AbstractResponseFilter):
    """ Rejects responses with any of the given values, records checks. """

    def __init__(self, *rejected:str) -> None:
        self.rejected = set(rejected)
        self.checked:list[str] = []

    def is_valid_response(self, response_type:core.ResponseType, value:str) -> bool:
        self.checked.append(value)
        return value not in self.rejected
