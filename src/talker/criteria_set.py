""" Criteria sets: the facts a caller queries the response system with. """

import abc
from typing import Optional

class AbstractCriteriaSet(abc.ABC):
    """ Read interface the response system needs from a set of facts. """

    @abc.abstractmethod
    def __len__(self) -> int: ...

    @abc.abstractmethod
    def find_criterion_index(self, name:str) -> int:
        """ index of the named fact or -1 if absent (case-insensitive) """
        ...

    @abc.abstractmethod
    def get_name(self, index:int) -> str: ...

    @abc.abstractmethod
    def get_value(self, index:int) -> Optional[str]: ...

    @abc.abstractmethod
    def get_weight(self, index:int) -> float:
        """ weight of the fact at index, 1.0 for an invalid index """
        ...

class CriteriaSet(AbstractCriteriaSet):
    """ Ordered (name, value, weight) facts with case-insensitive names. """

    def __init__(self) -> None:
        self._names:list[str] = []
        self._values:list[Optional[str]] = []
        self._weights:list[float] = []
        self._index:dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._names)

    def is_valid_index(self, index:int) -> bool:
        return 0 <= index < len(self._names)

    def find_criterion_index(self, name:str) -> int:
        return self._index.get(name.casefold(), -1)

    def get_name(self, index:int) -> str:
        if not self.is_valid_index(index):
            return ""
        return self._names[index]

    def get_value(self, index:int) -> Optional[str]:
        if not self.is_valid_index(index):
            return ""
        return self._values[index]

    def get_weight(self, index:int) -> float:
        if not self.is_valid_index(index):
            return 1.0
        return self._weights[index]

    def append_criteria(self, name:str, value:Optional[str], weight:float=1.0) -> None:
        """ adds a fact, replacing any existing fact of the same name """
        index = self.find_criterion_index(name)
        if index == -1:
            self._index[name.casefold()] = len(self._names)
            self._names.append(name)
            self._values.append(value)
            self._weights.append(weight)
        else:
            self._values[index] = value
            self._weights[index] = weight

    def remove_criteria(self, name:str) -> None:
        index = self.find_criterion_index(name)
        if index == -1:
            return
        del self._names[index]
        del self._values[index]
        del self._weights[index]
        self._index = {n.casefold(): i for i, n in enumerate(self._names)}

    def merge(self, other:AbstractCriteriaSet) -> None:
        for i in range(len(other)):
            self.append_criteria(other.get_name(i), other.get_value(i), other.get_weight(i))

    def copy(self) -> "CriteriaSet":
        criteria_set = CriteriaSet()
        criteria_set.merge(self)
        return criteria_set

    def describe(self) -> str:
        lines = []
        for name, value, weight in zip(self._names, self._values, self._weights):
            if weight != 1.0:
                lines.append(f'  {name:>20} = "{value}" (weight {weight:.2f})')
            else:
                lines.append(f'  {name:>20} = "{value}"')
        return "\n".join(lines)

    @staticmethod
    def from_dict(facts:dict[str, str]) -> "CriteriaSet":
        criteria_set = CriteriaSet()
        for name, value in facts.items():
            criteria_set.append_criteria(name, value)
        return criteria_set
