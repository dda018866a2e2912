"""
Run N games with an automated policy to obtain the score distribution.

"""

import os
import sys
import time
from argparse import ArgumentParser
from collections import defaultdict

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from greed.game import HEIGHT, WIDTH
from greed.policy.greedy import GreedyPolicy
from greed.policy.random import RandomPolicy
from greed.runner import EpisodeRunner


def parser():
    p = ArgumentParser()
    p.add_argument("--policy", choices=("random", "greedy"), default="random")
    p.add_argument("--rounds", type=int, default=1000)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--height", type=int, default=HEIGHT)
    p.add_argument("--width", type=int, default=WIDTH)
    return p


def main():
    t0 = time.perf_counter()
    ns = parser().parse_args()
    assert ns.rounds >= 1, ns.rounds

    if ns.policy == "greedy":
        policy = GreedyPolicy()
    else:
        policy = RandomPolicy(ns.seed)

    runner = EpisodeRunner(policy, height=ns.height, width=ns.width)
    summaries = runner.play_many(ns.rounds, seed=ns.seed)

    # bucket games by eaten percentage, 5% per bucket
    buckets = defaultdict(list)
    for summary in summaries:
        buckets[int(summary.percentage // 5) * 5].append(summary)

    total = len(summaries)
    for key, entries in sorted(buckets.items(), reverse=True):
        heading = f"{key}%:"
        count = len(entries)

        print(
            f"{heading:5s}",
            f"{count / total:6.1%}",
            f"count={count},",
            f"steps={sum(s.steps for s in entries) / count:.3f},",
            f"score={sum(s.score for s in entries) / count:.3f}",
        )

    best = max(summaries, key=lambda s: s.score)
    print(f"Best: score={best.score}, {best.percentage:.2f}%")

    t1 = time.perf_counter()
    print(f"Completed in {t1 - t0:.3f} seconds")


if __name__ == "__main__":
    main()
