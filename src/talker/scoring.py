""" Scores rules against a criteria set and picks the best matching rule. """

import logging
from collections.abc import Iterable
from typing import Optional

import numpy as np

from talker import core, criteria_set, matcher

logger = logging.getLogger(__name__)

def score_criteria(
    criterion:core.Criteria,
    facts:criteria_set.AbstractCriteriaSet,
    lookup_enumeration:matcher.EnumerationLookup,
    trace:Optional[int]=None,
) -> tuple[float, bool]:
    """ Scores one criterion against facts.

    Returns the score and whether the criterion vetoes its rule. trace is a
    logging level to describe the scoring at, or None for no tracing.
    """

    if isinstance(criterion, core.CompositeCriteria):
        score = 0.
        for subcriterion in criterion.subcriteria:
            # children can't veto, only the composite as a whole
            subscore, _ = score_criteria(subcriterion, facts, lookup_enumeration, trace)
            score += subscore

        exclude = criterion.required and score == 0.
        return score * criterion.weight, exclude

    assert isinstance(criterion, core.LeafCriteria)

    index = facts.find_criterion_index(criterion.key)
    actual_value:Optional[str] = ""
    if index != -1:
        actual_value = facts.get_value(index)
        # a fact that's present must have a value
        assert actual_value is not None
        if actual_value is None:
            return 0., False

    assert actual_value is not None
    if matcher.compare_using_matcher(actual_value, criterion.matcher, lookup_enumeration):
        fact_weight = facts.get_weight(index)
        score = fact_weight * criterion.weight
        if criterion.required and index == -1:
            # a required fact has to actually be there
            if trace is not None:
                logger.log(trace, f'  criterion "{criterion.name}":"{criterion.key}" "{actual_value}" vs "{criterion.value}" absent (+exclude rule)')
            return 0., True
        if trace is not None:
            logger.log(trace, f'  criterion "{criterion.name}":"{criterion.key}" "{actual_value}" vs "{criterion.value}" matched, weight {score:4.2f} (s {fact_weight:4.2f} x c {criterion.weight:4.2f})')
        return score, False

    if trace is not None:
        logger.log(trace, f'  criterion "{criterion.name}":"{criterion.key}" "{actual_value}" vs "{criterion.value}" failed{" (+exclude rule)" if criterion.required else ""}')
    return 0., criterion.required

def score_rule(
    rule:core.Rule,
    facts:criteria_set.AbstractCriteriaSet,
    lookup_enumeration:matcher.EnumerationLookup,
    debug_rule:str="",
    verbose:bool=False,
) -> float:
    trace:Optional[int] = None
    if debug_rule and debug_rule.casefold() == rule.name.casefold():
        trace = logging.INFO
    elif verbose:
        trace = logging.DEBUG

    if not rule.enabled:
        if trace is not None:
            logger.log(trace, f'rule "{rule.name}" is disabled')
        return 0.

    if trace is not None:
        logger.log(trace, f'scoring rule "{rule.name}"')

    score = 0.
    for criterion in rule.criteria:
        criterion_score, exclude = score_criteria(criterion, facts, lookup_enumeration, trace)
        score += criterion_score
        if trace is not None:
            logger.log(trace, f'  score {score:4.2f}')
        if exclude:
            score = 0.
            break

    return score

def find_best_matching_rule(
    rules:Iterable[core.Rule],
    facts:criteria_set.AbstractCriteriaSet,
    lookup_enumeration:matcher.EnumerationLookup,
    rng:np.random.Generator,
    min_score:float=0.001,
    debug_rule:str="",
    verbose:bool=False,
) -> Optional[core.Rule]:
    """ Finds the highest scoring rule, choosing at random among ties.

    Rules have to score at least min_score to match at all.
    """

    best_rules:list[core.Rule] = []
    best_score = min_score
    for rule in rules:
        score = score_rule(rule, facts, lookup_enumeration, debug_rule, verbose)
        if score >= best_score:
            if score != best_score:
                best_score = score
                best_rules.clear()
            best_rules.append(rule)

    if not best_rules:
        return None

    if len(best_rules) == 1:
        return best_rules[0]

    idx = int(rng.integers(0, len(best_rules)))
    if verbose:
        logger.debug(f'found {len(best_rules)} matching rules, selecting slot {idx}')
    return best_rules[idx]
