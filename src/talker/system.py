""" The response system: loads rule scripts and answers queries. """

import types
import logging
from typing import Optional

import numpy as np

from talker import config, core, criteria_set, database, filesystem, precache, responses, rule_parser, scoring, util

class ResponseSystem:
    """ Owns a compiled rule database and runs queries against it.

    Each query scores every rule against a criteria set, picks the best rule
    (at random among ties), picks one of that rule's response groups at
    random and lets the group choose a response.
    """

    def __init__(
        self,
        random:np.random.Generator,
        file_system:Optional[filesystem.AbstractFileSystem]=None,
        settings:Optional[types.SimpleNamespace]=None,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.random = random
        self.file_system = file_system
        self.settings = settings if settings is not None else config.Settings
        self.database = database.RuleDatabase()

    def clear(self) -> None:
        self.database.clear()

    def load_rule_set(self, path:str) -> bool:
        """ Loads the rule script at path through the file system, replacing
        whatever was loaded before.

        Returns False, keeping the current rules, if the script can't be
        read. Errors in the script are logged and don't raise.
        """
        buffer:Optional[str] = None
        if self.file_system is not None:
            buffer = self.file_system.read_file(path)
        if buffer is None:
            self.logger.info(f'failed to load {path}')
            return False

        self.load_from_buffer(path, buffer)
        return True

    def load_from_buffer(self, scriptfile:str, buffer:str) -> None:
        """ Compiles buffer into a new rule database that replaces the
        current one. """
        rule_database = database.RuleDatabase()
        parser = rule_parser.ScriptParser(rule_database, self.file_system, self.settings)
        parser.load_from_buffer(scriptfile, buffer)
        self.database = rule_database

        if self.settings.ResponseSystem.DUMP_RESPONSES:
            self.dump_rules()

    def reset_response_groups(self) -> None:
        for group in self.database.response_groups:
            group.reset()

    def find_best_matching_rule(self, facts:criteria_set.AbstractCriteriaSet, verbose:bool=False) -> Optional[core.Rule]:
        return scoring.find_best_matching_rule(
                self.database.rules.values(),
                facts,
                self.database.lookup_enumeration,
                self.random,
                min_score=self.settings.ResponseSystem.MIN_BEST_SCORE,
                debug_rule=self.settings.ResponseSystem.DEBUG_RULE,
                verbose=verbose,
        )

    def select_from_group(
        self,
        group:responses.ResponseGroup,
        depth:int,
        chain:list[str],
        response_filter:Optional[core.AbstractResponseFilter]=None,
        verbose:bool=False,
    ) -> Optional[tuple[responses.ResponseGroup, responses.Response]]:
        index = group.select(self.random, response_filter)
        if index is None:
            return None

        if verbose:
            self.logger.info(util.indent(depth, f'{group.name}\n{group.describe(index, depth)}'))

        response = group.responses[index]
        if response.response_type == core.ResponseType.RESPONSE:
            return self.resolve_response(response.value, depth+1, chain, response_filter, verbose)

        return group, response

    def resolve_response(
        self,
        name:str,
        depth:int,
        chain:list[str],
        response_filter:Optional[core.AbstractResponseFilter]=None,
        verbose:bool=False,
    ) -> Optional[tuple[responses.ResponseGroup, responses.Response]]:
        """ Follows a redirect into the response group called name. """
        chain = chain + [name]
        if depth > self.settings.ResponseSystem.MAX_REDIRECT_DEPTH:
            raise core.RedirectDepthError(chain)

        group = self.database.find_response_group(name)
        if group is None:
            self.logger.debug(f'redirect to unknown response "{name}"')
            return None

        return self.select_from_group(group, depth, chain, response_filter, verbose)

    def get_best_response(
        self,
        rule:core.Rule,
        response_filter:Optional[core.AbstractResponseFilter]=None,
        verbose:bool=False,
    ) -> Optional[tuple[responses.ResponseGroup, responses.Response]]:
        if not rule.response_groups:
            return None

        index = int(self.random.integers(0, len(rule.response_groups)))
        group = rule.response_groups[index]
        return self.select_from_group(group, 0, [group.name], response_filter, verbose)

    def find_best_response(
        self,
        facts:criteria_set.AbstractCriteriaSet,
        response_filter:Optional[core.AbstractResponseFilter]=None,
    ) -> Optional[core.ResponseResult]:
        """ Finds the response to facts, or None if nothing matches.

        Raises RedirectDepthError if the chosen response redirects too deeply,
        typically because some response groups redirect to each other.
        """

        debug_responses = self.settings.ResponseSystem.DEBUG_RESPONSES
        show_rules = debug_responses == 2
        show_result = debug_responses in (1, 2)

        rule = self.find_best_matching_rule(facts, verbose=debug_responses == 3)
        if rule is None:
            if show_rules:
                self.logger.info(f'no rule matched:\n{facts_description(facts)}')
            return None

        try:
            selected = self.get_best_response(rule, response_filter, show_result)
        finally:
            if rule.match_once:
                rule.disable()

        if selected is None:
            if show_rules:
                self.logger.info(f'rule "{rule.name}" matched but had no available response')
            return None

        group, response = selected
        result = core.ResponseResult(
                response.response_type,
                response.value,
                group.params.copy(),
                rule_name=rule.name,
                context=rule.context,
                apply_context_to_world=rule.apply_context_to_world,
                criteria=facts,
        )

        if show_result:
            self.logger.info(result.describe())

        return result

    def get_all_responses(self) -> list[core.ResponseResult]:
        """ Every concrete (non-redirect) response in every group. """
        results = []
        for group, response in self.database.iter_responses():
            if response.response_type == core.ResponseType.RESPONSE:
                continue
            results.append(core.ResponseResult(response.response_type, response.value, group.params.copy()))
        return results

    def precache(self, precacher:precache.AbstractPrecacher) -> None:
        touch_files = self.settings.ResponseSystem.MAKE_RES_LISTS
        for _, response in self.database.iter_responses():
            if response.response_type == core.ResponseType.SCENE:
                for path in precache.expand_gender(response.value):
                    precacher.precache_scene(path)
                    if touch_files:
                        precacher.touch_file(path)
            elif response.response_type == core.ResponseType.SPEAK:
                precacher.precache_sound(response.value)

    def dump_rules(self) -> str:
        text = "\n".join(rule.name for rule in self.database.rules.values())
        self.logger.info(f'rules:\n{text}')
        return text

    def dump_dictionary(self, name:str) -> str:
        lines = [f'Dictionary: {name}']
        for i, rule in enumerate(self.database.rules.values()):
            lines.append(util.indent(1, f'Rule {i}: {rule.name}'))
            for j, criterion in enumerate(rule.criteria):
                if isinstance(criterion, core.LeafCriteria):
                    lines.append(util.indent(2, f'Criteria {j}: {criterion.name} {criterion.key} {criterion.value}'))
                else:
                    lines.append(util.indent(2, f'Criteria {j}: {criterion.name}'))
            for j, group in enumerate(rule.response_groups):
                lines.append(util.indent(2, f'ResponseGroup {j}: {group.name}'))
                for k, response in enumerate(group.responses):
                    lines.append(util.indent(3, f'Response {k}: {response.value}'))

        text = "\n".join(lines)
        self.logger.info(text)
        return text

def facts_description(facts:criteria_set.AbstractCriteriaSet) -> str:
    if isinstance(facts, criteria_set.CriteriaSet):
        return facts.describe()
    return "\n".join(f'  {facts.get_name(i):>20} = "{facts.get_value(i)}"' for i in range(len(facts)))
