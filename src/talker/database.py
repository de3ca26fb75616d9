""" The four dictionaries a rule script compiles into. """

import logging
from collections.abc import Iterator
from typing import Optional

from talker import core, responses, util

class RuleDatabase:
    """ Enumerations, criteria, response groups and rules, by name.

    Names are case-insensitive. Response groups may share a name, in which
    case lookups by name find the first one inserted.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.enumerations:dict[str, float] = {}
        self.criteria:dict[str, core.Criteria] = {}
        self.rules:dict[str, core.Rule] = {}
        self.response_groups:list[responses.ResponseGroup] = []
        self._response_group_index:dict[str, int] = {}

        # used to name criteria declared inline in rules
        self.inline_criteria_count = 0

    def clear(self) -> None:
        self.enumerations.clear()
        self.criteria.clear()
        self.rules.clear()
        self.response_groups.clear()
        self._response_group_index.clear()
        self.inline_criteria_count = 0

    def is_empty(self) -> bool:
        return not (self.enumerations or self.criteria or self.rules or self.response_groups)

    def lookup_enumeration(self, name:str) -> tuple[float, bool]:
        value = self.enumerations.get(name.casefold())
        if value is None:
            return 0., False
        return value, True

    def insert_enumeration(self, name:str, value:float) -> bool:
        key = name.casefold()
        if key in self.enumerations:
            return False
        self.enumerations[key] = value
        return True

    def find_criterion(self, name:str) -> Optional[core.Criteria]:
        return self.criteria.get(name.casefold())

    def insert_criterion(self, criterion:core.Criteria) -> bool:
        key = criterion.name.casefold()
        if key in self.criteria:
            return False
        self.criteria[key] = criterion
        return True

    def next_inline_criterion_name(self, rule_name:str) -> str:
        name = f'[{rule_name}{self.inline_criteria_count:03d}]'
        self.inline_criteria_count += 1
        return name

    def find_rule(self, name:str) -> Optional[core.Rule]:
        return self.rules.get(name.casefold())

    def insert_rule(self, rule:core.Rule) -> bool:
        key = rule.name.casefold()
        if key in self.rules:
            return False
        self.rules[key] = rule
        return True

    def find_response_group(self, name:str) -> Optional[responses.ResponseGroup]:
        index = self._response_group_index.get(name.casefold())
        if index is None:
            return None
        return self.response_groups[index]

    def insert_response_group(self, group:responses.ResponseGroup) -> bool:
        """ Adds group, returning False if it shadows an existing name. """
        key = group.name.casefold()
        self.response_groups.append(group)
        if key in self._response_group_index:
            return False
        self._response_group_index[key] = len(self.response_groups) - 1
        return True

    def iter_responses(self) -> Iterator[tuple[responses.ResponseGroup, responses.Response]]:
        for group in self.response_groups:
            for response in group.responses:
                yield group, response

    def describe_counts(self) -> str:
        return f'{len(self.rules)} rules, {len(self.criteria)} criteria, {len(self.response_groups)} responses'
