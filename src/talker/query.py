""" Tool to load a response rule script and query it from the command line.

e.g.

    talker_query -r game/ scripts/talker/response_rules.txt concept=TLK_PAIN health=10
"""

import sys
import logging
import contextlib
import argparse

import numpy as np

from talker import config, criteria_set, filesystem, system, util

def parse_fact(fact:str) -> tuple[str, str, float]:
    """ Parses "name=value" or "name=value:weight". The text after the last
    ":" is only a weight if it reads as a number. """
    name, sep, value = fact.partition("=")
    if not sep or not name:
        raise ValueError(f'expected name=value[:weight], got "{fact}"')
    weight = 1.0
    # values can have colons of their own, e.g. "[NPCState::Alert]"
    head, sep, weight_str = value.rpartition(":")
    if sep:
        try:
            weight = float(weight_str)
            value = head
        except ValueError:
            pass
    return name, value, weight

def main() -> None:
    logging.basicConfig(stream=sys.stderr, level=logging.INFO)
    logger = logging.getLogger(util.fullname(__name__))

    with contextlib.ExitStack() as context_stack:

        parser = argparse.ArgumentParser(description="load a response rule script and find responses for some facts")
        parser.add_argument("script", type=str,
                help="rule script to load, relative to the root")
        parser.add_argument("facts", nargs="*", type=str,
                help="facts to query with as name=value or name=value:weight")
        parser.add_argument("-r", "--root", type=str, default=".",
                help="directory scripts and #includes are relative to. default \".\"")
        parser.add_argument("-s", "--seed", type=int, default=None,
                help="random seed for reproducible selection")
        parser.add_argument("-n", "--count", type=int, default=1,
                help="number of times to run the query. default 1")
        parser.add_argument("-c", "--config", type=str, default=None,
                help="toml file with settings overriding the defaults")
        parser.add_argument("--dump", action="store_true",
                help="list the rules after loading")
        parser.add_argument("--dictionary", action="store_true",
                help="describe rules, criteria and responses after loading")
        parser.add_argument("--all-responses", action="store_true",
                help="list every response after loading")
        parser.add_argument("--pdb", action="store_true")

        args = parser.parse_args()

        if args.pdb:
            context_stack.enter_context(util.PDBManager())

        if args.config:
            with open(args.config, "rt") as f:
                config.load_config(f)

        facts = criteria_set.CriteriaSet()
        for fact in args.facts:
            try:
                name, value, weight = parse_fact(fact)
            except ValueError as e:
                parser.error(str(e))
            facts.append_criteria(name, value, weight)

        response_system = system.ResponseSystem(
                np.random.default_rng(args.seed),
                filesystem.DirectoryFileSystem(args.root),
                config.Settings,
        )
        if not response_system.load_rule_set(args.script):
            logger.error(f'could not load {args.script} under {args.root}')
            sys.exit(1)

        if args.dump:
            print(response_system.dump_rules())
        if args.dictionary:
            print(response_system.dump_dictionary(args.script))
        if args.all_responses:
            for result in response_system.get_all_responses():
                print(result.describe())

        for _ in range(args.count):
            result = response_system.find_best_response(facts)
            if result is None:
                print("no response")
            else:
                print(result.describe())

if __name__ == "__main__":
    main()
