"""Two-sweep message passing over a clique tree.

The schedule is fixed by the tree's elimination order: the upward sweep
visits cliques in that order (leaves toward roots), the downward sweep
visits them in reverse.  Each visit sends every message the clique can
currently compute and has not sent before.
"""

from __future__ import annotations

import logging
from typing import Set

from cliqueflow.core.types import InferenceMode
from cliqueflow.inference.clique_tree import CliqueTree

logger = logging.getLogger(__name__)


class MessagePassingScheduler:
    """Runs sum-product or max-product message passing.

    Parameters
    ----------
    mode : InferenceMode
        ``SUM_PRODUCT`` for marginals, ``MAX_PRODUCT`` for max-marginals.
    """

    def __init__(self, mode: InferenceMode = InferenceMode.SUM_PRODUCT) -> None:
        self.mode = mode

    def run(self, tree: CliqueTree) -> Set[int]:
        """Pass all messages on *tree* and return the root cliques.

        A root is a clique that has received a message from every
        neighbor before sending any.  Exactly one exists per tree of the
        clique forest.
        """
        tree.begin_message_passing()
        roots: Set[int] = set()
        order = tree.elimination_order
        n = len(order)

        for step in range(2 * n):
            index = order[step] if step < n else order[2 * n - 1 - step]
            inbound = tree.inbound_messages(index)
            already_sent = tree.outbound_neighbors(index)
            computable = tree.factor(index).computable_outbound_messages(inbound)

            for separator in sorted(computable, key=lambda s: s.end):
                if separator.end not in already_sent:
                    self.pass_message(tree, separator.start, separator.end)

            num_inbound = sum(1 for m in inbound.values() if m is not None)
            if not already_sent and num_inbound == len(inbound):
                roots.add(index)

        logger.debug("Message passing finished; roots %s", sorted(roots))
        return roots

    def pass_message(self, tree: CliqueTree, start: int, end: int) -> None:
        """Compute and store the message ``start -> end``.

        Unfolded neighbor messages are first multiplied into the running
        marginal of *start*.  The message from *end* is included only if
        it has already arrived; in that case it is divided back out of
        the result.
        """
        logger.debug("pass: %d -> %d", start, end)
        separator = tree.separator(start, end)

        folded = tree.folded(start)
        to_fold = [n for n in tree.neighbors(start) if n not in folded]
        if tree.message(end, start) is None and end in to_fold:
            to_fold.remove(end)
        marginal = tree.fold_messages(start, to_fold)

        eliminate = [v for v in marginal.variables
                     if v not in separator.variables]
        if self.mode is InferenceMode.SUM_PRODUCT:
            message = marginal.marginalize(eliminate)
        else:
            message = marginal.max_marginalize(eliminate)

        if end in tree.folded(start):
            message = message.product(tree.message(end, start).invert())
        tree.add_message(start, end, message)
