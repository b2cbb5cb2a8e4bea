"""
Shared fixtures: small in-memory networks and alteration profiles.
"""

from io import StringIO

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from colornet.load_data import data_preprocessing


def make_context(network, alterations):
    return data_preprocessing(StringIO(network), StringIO(alterations))


TRIANGLE_NETWORK = "A B\nB C\nA C\n"

TRIANGLE_ALTERATIONS = """s1 A MUT
s1 B MUT
s2 B MUT
s2 C MUT
s3 A MUT
s3 C MUT
"""


@pytest.fixture
def triangle_context():
    """Every pair of genes is co-mutated in exactly one sample, no sample has all three."""
    return make_context(TRIANGLE_NETWORK, TRIANGLE_ALTERATIONS)


@pytest.fixture
def triangle_context_full():
    """Triangle plus a fourth sample carrying all three mutations."""
    return make_context(TRIANGLE_NETWORK, TRIANGLE_ALTERATIONS + "s4 A MUT\ns4 B MUT\ns4 C MUT\n")


@pytest.fixture
def write_inputs(tmp_path):
    def _write(network, alterations):
        net = tmp_path / "network.txt"
        alt = tmp_path / "alterations.txt"
        net.write_text(network)
        alt.write_text(alterations)
        return str(net), str(alt)
    return _write


def random_inputs(n_genes=8, n_samples=12, colors=("MUT", "AMP"), p=0.6, seed=0):
    """
    Ring network with a few chords and random alteration profiles.
    """
    rng = np.random.RandomState(seed)
    genes = ["G{0}".format(i) for i in range(n_genes)]
    edges = [(genes[i], genes[(i + 1) % n_genes]) for i in range(n_genes)]
    edges += [(genes[0], genes[n_genes // 2]), (genes[1], genes[n_genes - 2])]
    network = "\n".join("{0} {1}".format(u, v) for u, v in edges)
    rows = []
    for s in range(n_samples):
        for g in genes:
            for c in colors:
                if rng.rand() < p:
                    rows.append("S{0} {1} {2}".format(s, g, c))
    return network, "\n".join(rows)
