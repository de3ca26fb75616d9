""" The default (master) response system and the instanced systems derived
from it.

Instanced systems are either loaded from their own script or built from the
subset of the master's rules relevant to some criteria set, e.g. for one
character.
"""

import copy
import types
from typing import Optional

import numpy as np

from talker import core, criteria_set, filesystem, precache, responses, scoring, system

class InstancedResponseSystem(system.ResponseSystem):
    """ A response system associated with a custom script or entity. """

    def __init__(
        self,
        script_file:str,
        random:np.random.Generator,
        file_system:Optional[filesystem.AbstractFileSystem]=None,
        settings:Optional[types.SimpleNamespace]=None,
    ) -> None:
        super().__init__(random, file_system, settings)
        self.script_file = script_file

    def init(self) -> bool:
        self.load_rule_set(self.script_file)
        return True

    def level_init_post_entity(self) -> None:
        self.reset_response_groups()

    def release(self) -> None:
        self.clear()

class DefaultResponseSystem(system.ResponseSystem):
    """ The master response system, loaded from the configured script.

    Keeps a registry of instanced systems by script file (or custom name).
    """

    def __init__(
        self,
        random:np.random.Generator,
        file_system:Optional[filesystem.AbstractFileSystem]=None,
        settings:Optional[types.SimpleNamespace]=None,
    ) -> None:
        super().__init__(random, file_system, settings)
        self.instanced_systems:dict[str, InstancedResponseSystem] = {}
        # set once we've built custom systems that manage themselves
        self.custom_manageable = False

    @property
    def script_file(self) -> str:
        return self.settings.ResponseSystem.SCRIPT_FILE

    def init(self) -> bool:
        self.load_rule_set(self.script_file)
        return True

    def shutdown(self) -> None:
        self.clear_instanced()
        self.clear()

    def level_init_pre_entity(self, precacher:Optional[precache.AbstractPrecacher]=None) -> None:
        if self.settings.ResponseSystem.PRECACHE and precacher is not None:
            self.precache(precacher)

        self.reset_response_groups()

    def add_instanced_response_system(self, script_file:str, instanced_system:InstancedResponseSystem) -> None:
        self.instanced_systems[script_file] = instanced_system

    def find_response_system(self, script_file:str) -> Optional[InstancedResponseSystem]:
        return self.instanced_systems.get(script_file)

    def precache_custom_response_system(self, script_file:str, precacher:Optional[precache.AbstractPrecacher]=None) -> InstancedResponseSystem:
        instanced_system = self.find_response_system(script_file)
        if instanced_system is None:
            instanced_system = InstancedResponseSystem(script_file, self.random, self.file_system, self.settings)
            instanced_system.init()
            self.add_instanced_response_system(script_file, instanced_system)

        if precacher is not None:
            instanced_system.precache(precacher)

        return instanced_system

    def clear_instanced(self) -> None:
        for instanced_system in reversed(list(self.instanced_systems.values())):
            instanced_system.release()
        self.instanced_systems.clear()

    def destroy_custom_response_systems(self) -> None:
        self.clear_instanced()

    def reload_all_response_systems(self) -> None:
        self.clear()
        self.init()

        for script_file, instanced_system in reversed(list(self.instanced_systems.items())):
            if not self.custom_manageable:
                instanced_system.clear()
                instanced_system.init()
            else:
                # custom systems manage and reload themselves
                del self.instanced_systems[script_file]

    def copy_criteria_from(self, criterion:core.Criteria, custom_system:system.ResponseSystem) -> core.Criteria:
        """ Copies criterion, and any subcriteria, into custom_system unless
        it already has a criterion of the same name. """

        existing = custom_system.database.find_criterion(criterion.name)
        if existing is not None:
            return existing

        new_criterion:core.Criteria
        if isinstance(criterion, core.CompositeCriteria):
            subcriteria = [self.copy_criteria_from(x, custom_system) for x in criterion.subcriteria]
            new_criterion = core.CompositeCriteria(criterion.name, subcriteria, criterion.weight, criterion.required)
        else:
            assert isinstance(criterion, core.LeafCriteria)
            new_criterion = core.LeafCriteria(criterion.name, criterion.key, criterion.value, copy.copy(criterion.matcher), criterion.weight, criterion.required)

        custom_system.database.insert_criterion(new_criterion)
        return new_criterion

    def copy_redirect_targets_from(self, group:responses.ResponseGroup, custom_system:system.ResponseSystem) -> None:
        """ Copies the groups group redirects to, and any they redirect to,
        unless custom_system already has a group of that name. """

        for response in group.responses:
            if response.response_type != core.ResponseType.RESPONSE:
                continue
            if custom_system.database.find_response_group(response.value) is not None:
                continue
            target = self.database.find_response_group(response.value)
            if target is None:
                continue

            # inserted before recursing, which stops cycles
            new_target = target.copy()
            custom_system.database.insert_response_group(new_target)
            self.copy_redirect_targets_from(target, custom_system)

    def copy_responses_from(self, rule:core.Rule, new_rule:core.Rule, custom_system:system.ResponseSystem) -> None:
        for group in rule.response_groups:
            # groups are copied per rule, so names may repeat in the copy
            new_group = group.copy()
            custom_system.database.insert_response_group(new_group)
            new_rule.response_groups.append(new_group)
            self.copy_redirect_targets_from(group, custom_system)

    def copy_enumerations_from(self, custom_system:system.ResponseSystem) -> None:
        for name, value in self.database.enumerations.items():
            custom_system.database.insert_enumeration(name, value)

    def copy_rule_from(self, rule:core.Rule, custom_system:system.ResponseSystem) -> None:
        new_rule = core.Rule(rule.name)
        new_rule.context = rule.context
        new_rule.match_once = rule.match_once
        new_rule.enabled = rule.enabled
        new_rule.apply_context_to_world = rule.apply_context_to_world

        for criterion in rule.criteria:
            new_rule.criteria.append(self.copy_criteria_from(criterion, custom_system))

        self.copy_responses_from(rule, new_rule, custom_system)

        custom_system.database.insert_rule(new_rule)

    def build_custom_response_system_given_criteria(
        self,
        base_file:str,
        custom_name:str,
        facts:criteria_set.AbstractCriteriaSet,
        criteria_score:float,
    ) -> InstancedResponseSystem:
        """ Builds a new system holding copies of the rules relevant to facts.

        A rule is relevant once the running sum of its criteria scores
        reaches criteria_score. Required criteria don't veto here. The copy
        shares no state with this system.
        """

        self.logger.debug(f'building custom response system {custom_name} from {base_file}')

        custom_system = InstancedResponseSystem(custom_name, self.random, self.file_system, self.settings)
        custom_system.clear()

        self.copy_enumerations_from(custom_system)

        for rule in self.database.rules.values():
            score = 0.
            for criterion in rule.criteria:
                criterion_score, _ = scoring.score_criteria(criterion, facts, self.database.lookup_enumeration)
                score += criterion_score
                if score >= criteria_score:
                    self.copy_rule_from(rule, custom_system)
                    break

        self.custom_manageable = True
        self.add_instanced_response_system(custom_name, custom_system)

        return custom_system
