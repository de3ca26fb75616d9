""" Tests for compiling rule scripts """

import types

import pytest

from talker import core, rule_parser
from . import MemoryFileSystem

def test_scenario_script():
    db = rule_parser.loads("""
criterion IsHurt { health <30 }
response Pain { speak "ouch1" speak "ouch2" }
rule PainRule { criteria IsHurt response Pain }
""")

    criterion = db.find_criterion("ishurt")
    assert isinstance(criterion, core.LeafCriteria)
    assert criterion.key == "health"
    assert criterion.value == "<30"
    assert criterion.matcher.use_max

    group = db.find_response_group("Pain")
    assert group is not None
    assert [r.value for r in group.responses] == ["ouch1", "ouch2"]
    assert all(r.response_type == core.ResponseType.SPEAK for r in group.responses)

    rule = db.find_rule("PainRule")
    assert rule is not None
    assert rule.criteria == [criterion]
    assert rule.response_groups == [group]

def test_leaf_criteria():
    db = rule_parser.loads("""
criterion IsCitizen classname npc_citizen
criterion IsHurt weight 2.5 required health "<30"
criterion IsCombat state "[NPCState::Combat]" required
criterion NotZombie classname !npc_zombie weight 3
""")

    is_citizen = db.find_criterion("IsCitizen")
    assert isinstance(is_citizen, core.LeafCriteria)
    assert is_citizen.key == "classname"
    assert is_citizen.value == "npc_citizen"
    assert is_citizen.weight == 1.0
    assert not is_citizen.required

    is_hurt = db.find_criterion("IsHurt")
    assert isinstance(is_hurt, core.LeafCriteria)
    assert is_hurt.weight == 2.5
    assert is_hurt.required

    # flags after the key and value on the same line still apply
    is_combat = db.find_criterion("IsCombat")
    assert is_combat is not None
    assert is_combat.required

    not_zombie = db.find_criterion("NotZombie")
    assert isinstance(not_zombie, core.LeafCriteria)
    assert not_zombie.matcher.not_equal
    assert not_zombie.weight == 3.

def test_composite_criteria(caplog:pytest.LogCaptureFixture):
    db = rule_parser.loads("""
criterion IsCitizen classname npc_citizen
criterion IsHurt health <30
criterion HurtCitizen { IsCitizen IsHurt Bogus } required weight 2
""")

    composite = db.find_criterion("HurtCitizen")
    assert isinstance(composite, core.CompositeCriteria)
    assert [x.name for x in composite.subcriteria] == ["IsCitizen", "IsHurt"]
    assert composite.required
    assert composite.weight == 2.
    assert "unrecognized subcriterion" in caplog.text

def test_braced_body_with_unknown_names(caplog:pytest.LogCaptureFixture):
    db = rule_parser.loads("""
criterion IsHurt health <30
criterion Both { IsHrut IsCitzen }
criterion Either { IsHurt IsCitzen }
criterion InCombat { state "[NPCState::Combat]" }
criterion Crowded { enemies >=2,<5 }
""")

    # misspelled names aren't read as a key and value
    both = db.find_criterion("Both")
    assert isinstance(both, core.CompositeCriteria)
    assert both.subcriteria == []
    assert 'unrecognized subcriterion "IsHrut"' in caplog.text
    assert 'unrecognized subcriterion "IsCitzen"' in caplog.text

    either = db.find_criterion("Either")
    assert isinstance(either, core.CompositeCriteria)
    assert [x.name for x in either.subcriteria] == ["IsHurt"]

    in_combat = db.find_criterion("InCombat")
    assert isinstance(in_combat, core.LeafCriteria)
    assert in_combat.key == "state"

    crowded = db.find_criterion("Crowded")
    assert isinstance(crowded, core.LeafCriteria)
    assert crowded.value == ">=2,<5"

def test_looks_like_value():
    assert rule_parser.looks_like_value("<30")
    assert rule_parser.looks_like_value("7")
    assert rule_parser.looks_like_value("!npc_zombie")
    assert rule_parser.looks_like_value("[NPCState::Combat]")
    assert not rule_parser.looks_like_value("IsCitizen")
    assert not rule_parser.looks_like_value("npc_citizen")

def test_enumerations():
    db = rule_parser.loads("""
enumeration NPCState
{
    Idle 1
    Alert 2.5
    Idle 7
}
criterion IsAlert state "[NPCState::Alert]"
""")

    assert db.lookup_enumeration("[npcstate::idle]") == (1., True)
    assert db.lookup_enumeration("[NPCState::Alert]") == (2.5, True)
    assert db.lookup_enumeration("[NPCState::Combat]") == (0., False)
    assert "[npcstate::alert]" in db.enumerations

    criterion = db.find_criterion("IsAlert")
    assert isinstance(criterion, core.LeafCriteria)
    assert criterion.matcher.token == "2.500000"

def test_response_group_options():
    db = rule_parser.loads("""
response Greetings
{
    permitrepeats
    sequential
    norepeat
    speak "hello" weight 2 predelay "1,3" displayfirst
    scene "scenes/hi.vcd" odds 150 soundlevel SNDLVL_TALKING respeakdelay 10
    sentence "HELLO_1" displaylast weapondelay "2,4" speakonce noscene stop_on_nonidle
    print "hi there" nodelay
    response Other
}
""")

    group = db.find_response_group("greetings")
    assert group is not None
    assert not group.deplete_before_repeat
    assert group.sequential
    assert group.no_repeat

    assert [r.response_type for r in group.responses] == [
            core.ResponseType.SPEAK,
            core.ResponseType.SCENE,
            core.ResponseType.SENTENCE,
            core.ResponseType.PRINT,
            core.ResponseType.RESPONSE,
    ]
    speak, scene, sentence, _, redirect = group.responses
    assert speak.weight == 2.
    assert speak.first
    assert sentence.last
    assert redirect.value == "Other"

    params = group.params
    assert params.predelay == core.Interval(1., 2.)
    assert params.odds == 100
    assert params.soundlevel == 60
    assert params.respeakdelay == core.Interval(10., 0.)
    assert params.weapondelay == core.Interval(2., 2.)
    assert params.speak_once
    assert params.dont_use_scene
    assert params.stop_on_nonidle
    assert params.delay == core.Interval(0., 0.)

def test_group_level_options_without_braces():
    db = rule_parser.loads("""
response Idle defaultdelay odds 25
    speak "hmm"
    speak "la la la"
rule IdleRule { concept TLK_IDLE response Idle }
""")

    group = db.find_response_group("Idle")
    assert group is not None
    assert group.params.odds == 25
    assert group.params.delay is not None
    assert group.params.delay.start == pytest.approx(2.8)
    assert group.params.delay.range == pytest.approx(0.4)
    assert [r.value for r in group.responses] == ["hmm", "la la la"]
    assert db.find_rule("IdleRule") is not None

def test_sound_levels(caplog:pytest.LogCaptureFixture):
    db = rule_parser.loads("""
response A { speak "a" soundlevel sndlvl_norm }
response B { speak "b" soundlevel SNDLVL_87dB }
response C { speak "c" soundlevel SNDLVL_500dB }
response D { speak "d" soundlevel LOUD }
""")
    levels = {g.name: g.params.soundlevel for g in db.response_groups}
    assert levels == {"A": 75, "B": 87, "C": 75, "D": 75}
    assert "unknown sound level" in caplog.text

def test_unknown_response_type_and_option(caplog:pytest.LogCaptureFixture):
    db = rule_parser.loads("""
response A { spek "a" speak "b" speak "c" loudly }
""")
    group = db.find_response_group("A")
    assert group is not None
    assert [r.value for r in group.responses] == ["b", "c"]
    assert "unknown response type" in caplog.text
    assert "unknown command" in caplog.text

def test_rule_options():
    db = rule_parser.loads("""
criterion IsHurt health <30
response Pain { speak "ouch" }
rule PainRule
{
    criteria IsHurt
    concept TLK_PAIN
    classname npc_citizen required
    response Pain
    matchonce
    applyContext "saidpain:1"
    applyContext saidouch:1
    applyContextToWorld
}
""")

    rule = db.find_rule("PainRule")
    assert rule is not None
    assert rule.match_once
    assert rule.apply_context_to_world
    assert rule.context == "saidpain:1,saidouch:1"

    assert [c.name for c in rule.criteria] == ["IsHurt", "[PainRule000]", "[PainRule001]"]
    inline = rule.criteria[1]
    assert isinstance(inline, core.LeafCriteria)
    assert inline.key == "concept"
    assert inline.value == "TLK_PAIN"
    assert rule.criteria[2].required

    # inline criteria are named criteria too
    assert db.find_criterion("[PainRule001]") is rule.criteria[2]

def test_inline_criteria_names_are_unique():
    db = rule_parser.loads("""
response Pain { speak "ouch" }
rule A { concept TLK_PAIN response Pain }
rule B { concept TLK_PAIN response Pain }
""")
    assert [c.name for c in db.rules["a"].criteria] == ["[A000]"]
    assert [c.name for c in db.rules["b"].criteria] == ["[B001]"]

def test_unresolved_reference_discards_rule(caplog:pytest.LogCaptureFixture):
    db = rule_parser.loads("""
criterion IsHurt health <30
response Pain { speak "ouch" }
rule Bad { criteria IsHurt IsMissing response Pain }
rule AlsoBad { criteria IsHurt response Missing }
rule Good { criteria IsHurt response Pain }
""")
    assert db.find_rule("Bad") is None
    assert db.find_rule("AlsoBad") is None
    assert db.find_rule("Good") is not None
    assert 'no such criterion "IsMissing"' in caplog.text
    assert 'no such response "Missing"' in caplog.text

def test_duplicates(caplog:pytest.LogCaptureFixture):
    db = rule_parser.loads("""
criterion IsHurt health <30
criterion IsHurt health <50
response Pain { speak "ouch1" }
response Pain { speak "ouch2" }
rule PainRule { criteria IsHurt response Pain }
rule PainRule { response Pain }
""")

    criterion = db.find_criterion("IsHurt")
    assert isinstance(criterion, core.LeafCriteria)
    assert criterion.value == "<30"

    # both groups are kept, the first is found by name
    assert len(db.response_groups) == 2
    group = db.find_response_group("Pain")
    assert group is db.response_groups[0]
    assert group.responses[0].value == "ouch1"

    rule = db.find_rule("PainRule")
    assert rule is not None
    assert rule.criteria == [criterion]
    assert rule.response_groups == [group]

    assert "multiple definitions for criteria" in caplog.text
    assert "multiple definitions for response" in caplog.text
    assert "multiple definitions for rule" in caplog.text

def test_missing_brace(caplog:pytest.LogCaptureFixture):
    db = rule_parser.loads("""
rule NoBrace
rule Fine { concept TLK_IDLE }
enumeration NoBrace
enumeration Fine { a 1 }
""")
    assert db.find_rule("NoBrace") is None
    assert db.find_rule("Fine") is not None
    assert db.lookup_enumeration("[fine::a]") == (1., True)
    assert 'expecting "{" in rule "NoBrace"' in caplog.text
    assert 'expecting "{" in enumeration "NoBrace"' in caplog.text

def test_unknown_keyword_stops_file(caplog:pytest.LogCaptureFixture):
    db = rule_parser.loads("""
response Pain { speak "ouch" }
bogus Thing
response Later { speak "later" }
""")
    assert db.find_response_group("Pain") is not None
    assert db.find_response_group("Later") is None
    assert any(r.levelname == "ERROR" and "unknown entry type" in r.getMessage() for r in caplog.records)

def test_includes(settings:types.SimpleNamespace):
    file_system = MemoryFileSystem({
        "scripts/criteria.txt": """
criterion IsHurt health <30
#include "nested.txt"
""",
        "scripts/nested.txt": """
response Pain { speak "ouch" }
""",
        "scripts/broken.txt": """
response Broken { speak "broken" }
nonsense here
response NeverSeen { speak "never" }
""",
    })

    db = rule_parser.loads("""
#include "criteria.txt"
#include criteria.txt
#include "broken.txt"
#include "missing.txt"
rule PainRule { criteria IsHurt response Pain }
""", file_system=file_system, settings=settings)

    # each include is read once
    assert file_system.reads == ["scripts/criteria.txt", "scripts/nested.txt", "scripts/broken.txt", "scripts/missing.txt"]
    assert db.find_response_group("Broken") is not None
    assert db.find_response_group("NeverSeen") is None
    # a bad include doesn't stop the parent
    assert db.find_rule("PainRule") is not None

def test_include_prefix(settings:types.SimpleNamespace):
    settings.ResponseSystem.INCLUDE_PREFIX = "rules/"
    file_system = MemoryFileSystem({"rules/a.txt": 'response A { speak "a" }'})
    db = rule_parser.loads('#include a.txt', file_system=file_system, settings=settings)
    assert db.find_response_group("A") is not None

def test_keywords_case_insensitive():
    db = rule_parser.loads("""
CRITERION IsHurt health <30
Response Pain { SPEAK "ouch" Weight 2 }
RULE PainRule { CRITERIA IsHurt RESPONSE Pain MatchOnce }
""")
    rule = db.find_rule("painrule")
    assert rule is not None
    assert rule.match_once
    assert rule.response_groups[0].responses[0].weight == 2.
