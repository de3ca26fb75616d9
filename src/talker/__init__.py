""" Response Rules for Talking Characters

Picks what a character says (or plays, or does) in response to a situation.

The caller describes the situation as a set of facts, the criteria set, e.g.
concept=TLK_PAIN, health=10, classname=npc_citizen. Authors write rules in a
small script language. Each rule has criteria, tests of individual facts, and
one or more response groups. A query scores every rule against the facts, the
best scoring rule wins (ties are broken at random) and one of its response
groups chooses a response.

Response groups avoid repeating themselves: by default every response in a
group is used once before any is used again. Groups can also play their
responses in order, play only once, or force a response to come first or
last.

Facts that a rule doesn't mention don't matter. Criteria can be weighted to
prefer more specific rules, or required, in which case the rule can't match
without them.

A master system is loaded from a script at startup. Instanced systems can be
loaded from their own scripts or derived from the master for a particular
set of facts, keeping only the relevant rules.
"""
