""" Precache collaborator for the scenes and sounds responses refer to. """

import abc

GENDER_TOKEN = "$gender"
GENDERS = ("male", "female")

class AbstractPrecacher(abc.ABC):
    @abc.abstractmethod
    def precache_scene(self, path:str) -> None: ...

    @abc.abstractmethod
    def precache_sound(self, name:str) -> None: ...

    @abc.abstractmethod
    def touch_file(self, path:str) -> None:
        """ marks path as referenced, e.g. for building resource lists """
        ...

def expand_gender(path:str) -> list[str]:
    """ Expands the first $gender in a scene path into each gender.

    e.g. "scenes/$gender/hello.vcd" => ["scenes/male/hello.vcd", "scenes/female/hello.vcd"]
    """
    if GENDER_TOKEN not in path:
        return [path]
    prefix, _, suffix = path.partition(GENDER_TOKEN)
    return [f'{prefix}{gender}{suffix}' for gender in GENDERS]
