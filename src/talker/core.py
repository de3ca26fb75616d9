""" talker core data model

No dependencies on the parser or on selection logic. Response groups live in
talker.responses since they carry the selection state machine.
"""

import abc
import enum
import logging
from typing import Optional, Any, TYPE_CHECKING

from talker import matcher, util

if TYPE_CHECKING:
    from talker import responses, criteria_set

logger = logging.getLogger(__name__)

class ResponseSystemError(Exception):
    pass

class ScriptParseError(ResponseSystemError):
    """ A script error that aborts parsing of the current file. """
    pass

class RedirectDepthError(ResponseSystemError):
    def __init__(self, chain:list[str]) -> None:
        super().__init__(f'redirect chain too deep (cyclic?): {" -> ".join(chain)}')
        self.chain = chain

class ResponseType(enum.IntEnum):
    NONE = 0
    SPEAK = enum.auto()
    SENTENCE = enum.auto()
    SCENE = enum.auto()
    # a redirect into another response group
    RESPONSE = enum.auto()
    PRINT = enum.auto()

    @classmethod
    def from_token(cls, token:str) -> "ResponseType":
        try:
            return cls[token.upper()]
        except KeyError:
            return cls.NONE

    def describe(self) -> str:
        return self.name.lower()

class Interval:
    def __init__(self, start:float=0., range:float=0.) -> None:
        self.start = start
        self.range = range

    @staticmethod
    def read(token:str) -> "Interval":
        """ Reads "start" or "start,end" """
        start_str, _, end_str = token.partition(",")
        interval = Interval(util.atof(start_str))
        if end_str:
            interval.range = util.atof(end_str) - interval.start
        return interval

    def __eq__(self, other:Any) -> bool:
        if not isinstance(other, Interval):
            return NotImplemented
        return self.start == other.start and self.range == other.range

    def __repr__(self) -> str:
        return f'Interval({self.start}, {self.range})'

class ResponseParams:
    """ Playback parameters shared by every response in a group.

    Unset parameters are None (or False for the flags). """

    def __init__(self) -> None:
        self.predelay:Optional[Interval] = None
        self.delay:Optional[Interval] = None
        self.respeakdelay:Optional[Interval] = None
        self.weapondelay:Optional[Interval] = None
        self.odds:Optional[int] = None
        self.soundlevel:Optional[int] = None
        self.speak_once = False
        self.dont_use_scene = False
        self.stop_on_nonidle = False

    def copy(self) -> "ResponseParams":
        params = ResponseParams()
        params.__dict__.update(self.__dict__)
        return params

    def describe(self) -> str:
        parts = []
        for k, v in self.__dict__.items():
            if v is None or v is False:
                continue
            parts.append(f'{k}={v}')
        return " ".join(parts)

class Criteria(abc.ABC):
    """ One named match test, either a leaf test of a single fact or a
    composite of other named criteria. """

    def __init__(self, name:str, weight:float=1.0, required:bool=False) -> None:
        self.name = name
        self.weight = weight
        self.required = required

    @property
    @abc.abstractmethod
    def is_composite(self) -> bool: ...

class LeafCriteria(Criteria):
    def __init__(self, name:str, key:str, value:str, criteria_matcher:matcher.Matcher, weight:float=1.0, required:bool=False) -> None:
        super().__init__(name, weight, required)
        # the fact name looked up in the criteria set
        self.key = key
        self.value = value
        self.matcher = criteria_matcher

    @property
    def is_composite(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f'LeafCriteria({self.name!r}, {self.key!r}, {self.value!r})'

class CompositeCriteria(Criteria):
    def __init__(self, name:str, subcriteria:list[Criteria], weight:float=1.0, required:bool=False) -> None:
        super().__init__(name, weight, required)
        self.subcriteria = subcriteria

    @property
    def is_composite(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f'CompositeCriteria({self.name!r}, {[x.name for x in self.subcriteria]})'

class Rule:
    def __init__(self, name:str) -> None:
        self.name = name
        self.criteria:list[Criteria] = []
        self.response_groups:list["responses.ResponseGroup"] = []
        self.match_once = False
        self.enabled = True
        self.context:Optional[str] = None
        self.apply_context_to_world = False

    def disable(self) -> None:
        self.enabled = False

    def add_context(self, context:str) -> None:
        if self.context is None:
            self.context = context
        else:
            self.context = f'{self.context},{context}'

    def __repr__(self) -> str:
        return f'Rule({self.name!r})'

class AbstractResponseFilter(abc.ABC):
    """ Lets the caller veto individual responses, e.g. scenes an actor
    can't play right now. """

    @abc.abstractmethod
    def is_valid_response(self, response_type:ResponseType, value:str) -> bool: ...

class ResponseResult:
    """ The response handed back to the caller. """

    def __init__(
        self,
        response_type:ResponseType,
        value:str,
        params:ResponseParams,
        rule_name:Optional[str]=None,
        context:Optional[str]=None,
        apply_context_to_world:bool=False,
        criteria:Optional["criteria_set.AbstractCriteriaSet"]=None,
    ) -> None:
        self.response_type = response_type
        self.value = value
        self.params = params
        self.rule_name = rule_name
        self.context = context
        self.apply_context_to_world = apply_context_to_world
        self.criteria = criteria

    def describe(self) -> str:
        desc = f'response {self.response_type.describe()} "{self.value}"'
        if self.rule_name:
            desc += f' from rule "{self.rule_name}"'
        if self.context:
            desc += f' context "{self.context}"{" (world)" if self.apply_context_to_world else ""}'
        params = self.params.describe()
        if params:
            desc += f' [{params}]'
        return desc

    def __repr__(self) -> str:
        return f'ResponseResult({self.response_type.describe()}, {self.value!r})'
