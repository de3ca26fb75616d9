""" Response groups and the selection state machine over them.

A group either walks its responses in order (sequential) or draws a weighted
random response, by default depleting each response until every response has
been used once (a "generation") before any repeats.
"""

import logging
from typing import Optional

import numpy as np

from talker import core, util

logger = logging.getLogger(__name__)

class Response:
    def __init__(self, response_type:core.ResponseType, value:str, weight:float=1.0) -> None:
        self.response_type = response_type
        self.value = value
        self.weight = weight

        # set to the group's generation when this response is used
        self.depletion_count = 0
        # displayfirst/displaylast
        self.first = False
        self.last = False

    def copy(self) -> "Response":
        response = Response(self.response_type, self.value, self.weight)
        response.depletion_count = self.depletion_count
        response.first = self.first
        response.last = self.last
        return response

    def __repr__(self) -> str:
        return f'Response({self.response_type.describe()}, {self.value!r}, {self.weight})'

class ResponseGroup:
    def __init__(self, name:str) -> None:
        self.name = name
        self.responses:list[Response] = []
        self.params = core.ResponseParams()

        self.sequential = False
        self.no_repeat = False
        # False when the group is marked permitrepeats
        self.deplete_before_repeat = True

        self.enabled = True
        self.current_index = 0
        # set once a sequential group has delivered its last response
        self.cycle_complete = False
        self.depletion_generation = 1

    def __len__(self) -> int:
        return len(self.responses)

    def __repr__(self) -> str:
        return f'ResponseGroup({self.name!r}, {len(self.responses)} responses)'

    def is_available(self, response:Response) -> bool:
        if not self.deplete_before_repeat:
            return True
        return response.depletion_count != self.depletion_generation

    def has_undepleted_choices(self) -> bool:
        if not self.deplete_before_repeat:
            return True
        return any(self.is_available(r) for r in self.responses)

    def undepleted_first(self) -> Optional[int]:
        for i, r in enumerate(self.responses):
            if r.first and self.is_available(r):
                return i
        return None

    def undepleted_last(self) -> Optional[int]:
        for i, r in enumerate(self.responses):
            if r.last and self.is_available(r):
                return i
        return None

    def mark_response_used(self, index:int) -> None:
        if not self.deplete_before_repeat:
            return
        if index < 0 or index >= len(self.responses):
            return
        self.responses[index].depletion_count = self.depletion_generation

    def reset_depletion_count(self) -> None:
        """ Starts a new generation, every response becomes available. """
        if not self.deplete_before_repeat:
            return
        self.depletion_generation += 1

    def reset(self) -> None:
        self.enabled = True
        self.current_index = 0
        self.cycle_complete = False
        self.depletion_generation = 1
        for r in self.responses:
            r.depletion_count = 0

    def _fake_deplete(self, response_filter:core.AbstractResponseFilter, restore:dict[int, int]) -> None:
        for i, r in enumerate(self.responses):
            if not self.is_available(r):
                continue
            if response_filter.is_valid_response(r.response_type, r.value):
                continue
            restore.setdefault(i, r.depletion_count)
            self.mark_response_used(i)

    def select_weighted(self, rng:np.random.Generator, response_filter:Optional[core.AbstractResponseFilter]=None) -> Optional[int]:
        """ Picks a response at random in proportion to the weights.

        Responses the filter rejects are marked used for the duration of the
        draw so they can't be picked, and are put back as they were before
        returning. Returns the index of the chosen response or None.
        """

        if not self.responses:
            return None

        check_repeats = self.deplete_before_repeat
        restore:dict[int, int] = {}
        try:
            if response_filter is not None and check_repeats:
                self._fake_deplete(response_filter, restore)

            if not self.has_undepleted_choices():
                self.reset_depletion_count()
                if response_filter is not None and check_repeats:
                    self._fake_deplete(response_filter, restore)

                if not self.has_undepleted_choices():
                    return None

                # we've been through every response once
                if self.no_repeat:
                    self.enabled = False
                    return None

            slot = self._choose_slot(rng, response_filter)
            if slot is not None:
                self.mark_response_used(slot)
            return slot
        finally:
            # rejected responses can't have won so they're safe to put back
            for i, depletion_count in restore.items():
                self.responses[i].depletion_count = depletion_count

    def _choose_slot(self, rng:np.random.Generator, response_filter:Optional[core.AbstractResponseFilter]) -> Optional[int]:
        check_repeats = self.deplete_before_repeat

        if check_repeats:
            first = self.undepleted_first()
            if first is not None:
                return first

            last = self.undepleted_last()
            if last is not None and all(r.last for r in self.responses if self.is_available(r)):
                return last

        total_weight = 0.
        slot:Optional[int] = None
        for i, r in enumerate(self.responses):
            if not self.is_available(r):
                continue
            # last entries are only used once everything else is depleted
            if check_repeats and r.last:
                continue

            prev_slot = slot
            if total_weight == 0.:
                slot = i

            total_weight += r.weight
            if total_weight == 0. or rng.uniform(0., total_weight) < r.weight:
                slot = i

            if not check_repeats and slot != prev_slot and response_filter is not None and not response_filter.is_valid_response(r.response_type, r.value):
                slot = prev_slot
                total_weight -= r.weight

        return slot

    def select_sequential(self, response_filter:Optional[core.AbstractResponseFilter]=None) -> Optional[int]:
        """ Returns the next response in order, skipping any the filter
        rejects. After the last response the group starts over at the first,
        unless it's norepeat in which case it disables itself. """

        n = len(self.responses)
        for _ in range(n):
            if self.cycle_complete:
                if self.no_repeat:
                    self.enabled = False
                    return None
                self.cycle_complete = False

            index = self.current_index
            self.current_index = index + 1
            if self.current_index >= n:
                self.current_index = 0
                self.cycle_complete = True

            r = self.responses[index]
            if response_filter is None or response_filter.is_valid_response(r.response_type, r.value):
                return index

        return None

    def select(self, rng:np.random.Generator, response_filter:Optional[core.AbstractResponseFilter]=None) -> Optional[int]:
        if not self.enabled or not self.responses:
            return None
        if self.sequential:
            return self.select_sequential(response_filter)
        return self.select_weighted(rng, response_filter)

    def copy(self) -> "ResponseGroup":
        """ Deep copy, including the selection state. """
        group = ResponseGroup(self.name)
        group.responses = [r.copy() for r in self.responses]
        group.params = self.params.copy()
        group.sequential = self.sequential
        group.no_repeat = self.no_repeat
        group.deplete_before_repeat = self.deplete_before_repeat
        group.enabled = self.enabled
        group.current_index = self.current_index
        group.cycle_complete = self.cycle_complete
        group.depletion_generation = self.depletion_generation
        return group

    def describe(self, selected:Optional[int]=None, depth:int=0) -> str:
        lines = []
        for i, r in enumerate(self.responses):
            marker = "-> " if i == selected else "   "
            lines.append(util.indent(depth+1, f'{marker}{r.response_type.describe():>20} : {r.value:>40} {r.weight:5.3f}'))
        return "\n".join(lines)
