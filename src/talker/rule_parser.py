""" Response Rule Script Parsing

A script is a sequence of top level declarations:

    #include "other_file.txt"

    enumeration NPCState { Idle 1 Alert 2 Combat 3 }

    criterion IsHurt { health <30 }
    criterion IsCitizen classname npc_citizen required
    criterion Hurtish { IsHurt IsCitizen }

    response Pain
    {
        speak "ouch1" weight 2
        speak "ouch2" displaylast
    }

    rule PainRule
    {
        criteria IsHurt
        state "[NPCState::Combat]"
        response Pain
        matchonce
    }

Keywords are case-insensitive. Newlines matter in a few places: response
options and rule criteria/response lists continue to the end of the line.
"""

import re
import types
import logging
from typing import Optional

from talker import core, database, filesystem, matcher, responses, tokenizer, util
from talker import config

ROOT_COMMANDS = frozenset(["#include", "response", "enumeration", "criteria", "criterion", "rule"])
GROUP_KEYWORDS = frozenset(["permitrepeats", "sequential", "norepeat"])
RULE_KEYWORDS = frozenset(["matchonce", "applycontexttoworld", "applycontext", "response", "criteria", "criterion"])

SOUNDLEVEL_RE = re.compile("sndlvl_", re.IGNORECASE)
# a matcher operator, a number or an enumeration reference
VALUE_RE = re.compile(r"[<>=!,\[0-9]")

def looks_like_value(token:str) -> bool:
    """ Could token be a criterion value rather than a criterion name? """
    return VALUE_RE.search(token) is not None

class ScriptParser:
    """ Compiles rule scripts into a RuleDatabase.

    Script problems never raise out of load_from_buffer, they're logged. An
    unknown top level keyword stops parsing the current file, everything
    parsed up to that point is kept.
    """

    def __init__(
        self,
        rule_database:database.RuleDatabase,
        file_system:Optional[filesystem.AbstractFileSystem]=None,
        settings:Optional[types.SimpleNamespace]=None,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.database = rule_database
        self.file_system = file_system
        self.settings = settings if settings is not None else config.Settings
        self.stack = tokenizer.ScriptStack()

    @property
    def token(self) -> str:
        return self.stack.token

    def parse_token(self) -> bool:
        return self.stack.parse_token()

    def response_warning(self, message:str) -> None:
        self.logger.warning(f'{self.stack.current_script}(token {self.stack.current_token}) : {message}')

    def is_root_command(self) -> bool:
        return self.token.lower() in ROOT_COMMANDS

    def load_from_buffer(self, scriptfile:str, buffer:str) -> None:
        if len(self.stack) == 0:
            # a new root load, includes are tracked per load
            self.stack.reset()

        self.stack.push_script(scriptfile, buffer)
        if self.settings.ResponseSystem.DUMP_RESPONSES:
            self.logger.info(f'reading {scriptfile}')

        try:
            while self.parse_token() and self.token:
                keyword = self.token.lower()
                if keyword == "#include":
                    self.parse_include()
                elif keyword == "response":
                    self.parse_response()
                elif keyword in ("criterion", "criteria"):
                    self.parse_criterion()
                elif keyword == "rule":
                    self.parse_rule()
                elif keyword == "enumeration":
                    self.parse_enumeration()
                else:
                    raise core.ScriptParseError(f'{scriptfile}(token {self.stack.current_token}) : unknown entry type "{self.token}", expecting "response", "criterion", "enumeration" or "rule"')
        except core.ScriptParseError as e:
            self.logger.error(str(e))
        finally:
            if len(self.stack) == 1:
                self.logger.info(f'{scriptfile} ({self.database.describe_counts()})')
            self.stack.pop_script()

    def parse_include(self) -> None:
        self.parse_token()
        include_file = f'{self.settings.ResponseSystem.INCLUDE_PREFIX}{self.token}'

        if self.stack.is_included(include_file):
            return

        buffer:Optional[str] = None
        if self.file_system is not None:
            buffer = self.file_system.read_file(include_file)
        if buffer is None:
            self.logger.warning(f'unable to load #included script {include_file}')
            return

        self.load_from_buffer(include_file, buffer)

    def read_interval(self) -> core.Interval:
        self.parse_token()
        return core.Interval.read(self.token)

    def text_to_sound_level(self, token:str) -> int:
        sound_levels = vars(self.settings.SoundLevels)
        for name, level in sound_levels.items():
            if name.casefold() == token.casefold():
                return level

        if SOUNDLEVEL_RE.match(token):
            level = util.atoi(token[len("sndlvl_"):])
            if 0 < level <= 180:
                return level

        default_level = self.settings.ResponseParams.DEFAULT_SOUNDLEVEL
        self.response_warning(f'unknown sound level "{token}", using {default_level}')
        return sound_levels[default_level]

    def parse_params_option(self, keyword:str, params:core.ResponseParams) -> bool:
        """ Applies a playback option to params, reading its argument if it
        has one. Returns False if keyword isn't a playback option. """

        if keyword == "predelay":
            params.predelay = self.read_interval()
        elif keyword == "nodelay":
            params.delay = core.Interval(0., 0.)
        elif keyword == "defaultdelay":
            min_delay = self.settings.ResponseParams.DEFAULT_MIN_DELAY
            max_delay = self.settings.ResponseParams.DEFAULT_MAX_DELAY
            params.delay = core.Interval(min_delay, max_delay - min_delay)
        elif keyword == "delay":
            params.delay = self.read_interval()
        elif keyword == "speakonce":
            params.speak_once = True
        elif keyword == "noscene":
            params.dont_use_scene = True
        elif keyword == "stop_on_nonidle":
            params.stop_on_nonidle = True
        elif keyword == "odds":
            self.parse_token()
            params.odds = int(util.clip(util.atoi(self.token), 0, 100))
        elif keyword == "respeakdelay":
            params.respeakdelay = self.read_interval()
        elif keyword == "weapondelay":
            params.weapondelay = self.read_interval()
        elif keyword == "soundlevel":
            self.parse_token()
            params.soundlevel = self.text_to_sound_level(self.token)
        else:
            return False
        return True

    def is_response_stop(self) -> bool:
        keyword = self.token.lower()
        return keyword == "}" or keyword in GROUP_KEYWORDS or core.ResponseType.from_token(keyword) != core.ResponseType.NONE

    def parse_one_response(self, group:responses.ResponseGroup) -> None:
        response_type = core.ResponseType.from_token(self.token)
        if response_type == core.ResponseType.NONE:
            self.response_warning(f'response entry "{group.name}" with unknown response type "{self.token}"')
            # skip the rest of the entry
            while self.stack.token_waiting():
                self.parse_token()
                if self.is_response_stop() or self.is_root_command():
                    self.stack.unget()
                    break
            return

        self.parse_token()
        response = responses.Response(response_type, self.token)

        while self.stack.token_waiting():
            self.parse_token()
            if self.is_response_stop():
                self.stack.unget()
                break

            keyword = self.token.lower()
            if keyword == "weight":
                self.parse_token()
                response.weight = util.atof(self.token)
            elif keyword == "displayfirst":
                response.first = True
            elif keyword == "displaylast":
                response.last = True
            elif not self.parse_params_option(keyword, group.params):
                self.response_warning(f'response entry "{group.name}" with unknown command "{self.token}"')

        group.responses.append(response)

    def parse_response(self) -> None:
        self.parse_token()
        group = responses.ResponseGroup(self.token)

        while self.parse_token():
            if self.is_root_command():
                self.stack.unget()
                break

            keyword = self.token.lower()
            if keyword == "{":
                while True:
                    if not self.parse_token():
                        self.response_warning(f'expecting "}}" in response "{group.name}"')
                        break
                    keyword = self.token.lower()
                    if keyword == "}":
                        break
                    elif keyword == "permitrepeats":
                        group.deplete_before_repeat = False
                    elif keyword == "sequential":
                        group.sequential = True
                    elif keyword == "norepeat":
                        group.no_repeat = True
                    else:
                        self.parse_one_response(group)
                break

            if self.parse_params_option(keyword, group.params):
                continue

            self.parse_one_response(group)

        if not self.database.insert_response_group(group):
            self.response_warning(f'multiple definitions for response "{group.name}", lookups will use the first')

    def parse_criterion_body(self, criterion_name:str) -> tuple[list[core.Criteria], Optional[str], Optional[str]]:
        """ Parses the inside of "{ ... }" after a criterion name.

        This is normally a list of named criteria to combine, but a body
        starting with an unknown name followed by something that looks like
        a value (see looks_like_value) is a single key/value test, e.g.
        "{ health <30 }". Otherwise unknown names are warned about and
        skipped.
        """

        subcriteria:list[core.Criteria] = []
        key:Optional[str] = None
        value:Optional[str] = None
        while True:
            if not self.parse_token():
                self.response_warning(f'expecting "}}" in criterion "{criterion_name}"')
                break
            if self.token == "}":
                break

            if key is not None:
                self.response_warning(f'skipping extra token "{self.token}" in criterion "{criterion_name}"')
                continue

            subcriterion = self.database.find_criterion(self.token)
            if subcriterion is not None:
                subcriteria.append(subcriterion)
                continue

            first = self.token
            if not subcriteria and self.parse_token():
                if self.token != "}" and looks_like_value(self.token) and self.database.find_criterion(self.token) is None:
                    key = first
                    value = self.token
                    continue
                self.stack.unget()
            self.response_warning(f'skipping unrecognized subcriterion "{first}" in "{criterion_name}"')

        return subcriteria, key, value

    def parse_one_criterion(self, criterion_name:str) -> Optional[core.Criteria]:
        weight = 1.0
        required = False
        subcriteria:list[core.Criteria] = []
        is_composite = False
        key:Optional[str] = None
        value:Optional[str] = None

        got_body = False
        while self.stack.token_waiting() or not got_body:
            if not self.parse_token():
                break

            keyword = self.token.lower()
            if self.is_root_command() or keyword == "}" or keyword in RULE_KEYWORDS:
                self.stack.unget()
                break

            if keyword == "{":
                got_body = True
                subcriteria, body_key, body_value = self.parse_criterion_body(criterion_name)
                if body_key is not None:
                    key, value = body_key, body_value
                else:
                    is_composite = True
            elif keyword == "required":
                required = True
            elif keyword == "weight":
                self.parse_token()
                weight = util.atof(self.token)
            else:
                key = self.token
                self.parse_token()
                if self.token == "}":
                    self.response_warning(f'criterion "{criterion_name}" has no value for "{key}"')
                    self.stack.unget()
                    value = None
                else:
                    value = self.token
                got_body = True

        criterion:core.Criteria
        if is_composite:
            criterion = core.CompositeCriteria(criterion_name, subcriteria, weight, required)
        else:
            if key is None:
                self.response_warning(f'criterion "{criterion_name}" has no key or value')
            criterion_matcher = matcher.compute_matcher(value, self.database.lookup_enumeration)
            criterion = core.LeafCriteria(criterion_name, key or "", value or "", criterion_matcher, weight, required)

        if not self.database.insert_criterion(criterion):
            self.response_warning(f'multiple definitions for criteria "{criterion_name}"')
            return None

        return criterion

    def parse_criterion(self) -> None:
        self.parse_token()
        self.parse_one_criterion(self.token)

    def parse_enumeration(self) -> None:
        self.parse_token()
        enumeration_name = self.token

        self.parse_token()
        if self.token != "{":
            self.response_warning(f'expecting "{{" in enumeration "{enumeration_name}", got "{self.token}"')
            if self.is_root_command():
                self.stack.unget()
            return

        while True:
            if not self.parse_token() or not self.token:
                self.response_warning(f'expecting more tokens in enumeration "{enumeration_name}"')
                break
            if self.token == "}":
                break

            key = self.token
            self.parse_token()
            # duplicates are ignored, the first definition wins
            self.database.insert_enumeration(f'[{enumeration_name}::{key}]'.lower(), util.atof(self.token))

    def parse_name_list(self) -> list[str]:
        """ Reads names to the end of the line, a "}" or a rule keyword. """
        names = []
        while self.stack.token_waiting():
            self.parse_token()
            if self.token == "}" or self.token.lower() in RULE_KEYWORDS:
                self.stack.unget()
                break
            names.append(self.token)
        return names

    def parse_rule(self) -> None:
        self.parse_token()
        rule = core.Rule(self.token)

        self.parse_token()
        if self.token != "{":
            self.response_warning(f'expecting "{{" in rule "{rule.name}", got "{self.token}"')
            if self.is_root_command():
                self.stack.unget()
            return

        valid_rule = True
        while True:
            if not self.parse_token() or not self.token:
                self.response_warning(f'expecting more tokens in rule "{rule.name}"')
                break

            keyword = self.token.lower()
            if keyword == "}":
                break
            elif keyword == "matchonce":
                rule.match_once = True
            elif keyword == "applycontexttoworld":
                rule.apply_context_to_world = True
            elif keyword == "applycontext":
                self.parse_token()
                rule.add_context(self.token)
            elif keyword == "response":
                for name in self.parse_name_list():
                    group = self.database.find_response_group(name)
                    if group is None:
                        valid_rule = False
                        self.response_warning(f'no such response "{name}" for rule "{rule.name}"')
                    else:
                        rule.response_groups.append(group)
            elif keyword in ("criteria", "criterion"):
                for name in self.parse_name_list():
                    criterion = self.database.find_criterion(name)
                    if criterion is None:
                        valid_rule = False
                        self.response_warning(f'no such criterion "{name}" for rule "{rule.name}"')
                    else:
                        rule.criteria.append(criterion)
            elif self.is_root_command():
                # e.g. "rule" or "enumeration", the closing brace is missing
                self.response_warning(f'expecting "}}" in rule "{rule.name}", got "{self.token}"')
                self.stack.unget()
                break
            else:
                # an inline criterion, name it and parse it in
                self.stack.unget()
                inline_criterion = self.parse_one_criterion(self.database.next_inline_criterion_name(rule.name))
                if inline_criterion is not None:
                    rule.criteria.append(inline_criterion)

        if not valid_rule:
            self.logger.info(f'discarded rule {rule.name}')
            return

        if not self.database.insert_rule(rule):
            self.response_warning(f'multiple definitions for rule "{rule.name}"')

def loads(
    data:str,
    file_system:Optional[filesystem.AbstractFileSystem]=None,
    settings:Optional[types.SimpleNamespace]=None,
    scriptfile:str="<string>",
) -> database.RuleDatabase:
    """
    Loads rules from a script string into a new rule database.

    Parameters
    ----------
    data : str
        rule script text
    file_system : AbstractFileSystem, optional
        used to resolve #includes, which are skipped if absent
    settings : SimpleNamespace, optional
        configuration, defaults to config.Settings
    scriptfile : str
        name of the script for diagnostics

    Returns
    -------
    out : RuleDatabase
        the compiled enumerations, criteria, response groups and rules
    """

    rule_database = database.RuleDatabase()
    ScriptParser(rule_database, file_system, settings).load_from_buffer(scriptfile, data)
    return rule_database
