"""
Tests for the level-wise colored subnetwork enumerator.

Scientific Validation:
    - Support of every reported subnetwork equals the intersection of its node profiles
    - Reported subnetworks are connected and use every gene once
    - Colorfulness predicates hold on every grown level
"""

import networkx as nx
import numpy as np
import pytest

from colornet.bitmask import PatientBitmask
from colornet.config import MODE_EXACT, MODE_COLORFUL, MODE_BACKGROUND_EXCLUSIVE, MODE_ALMOST, MODE_ILP
from colornet.enumerator import (SubnetworkEnumerator, color_support, qualified_colors, node_mask, is_colorful,
                                 is_background_exclusive, extend_mismatch_profile)
from colornet.exceptions import ConfigurationError, DeltaRangeError
from colornet.subnetworks import ColoredNodeSet

from conftest import make_context, random_inputs


def names(context, node_set):
    return tuple(context.graph.node_names[node.gene] for node in node_set.ordered())


class TestColorSupport:

    def test_counts(self, triangle_context):
        support = color_support(triangle_context)
        # A, B and C are each mutated in two samples
        assert support.tolist() == [[2, 2], [2, 2], [2, 2]]

    def test_per_color_sums(self):
        context = make_context(*random_inputs(seed=3))
        support = color_support(context)
        for gene, masks in enumerate(context.catalog.gene_alterations):
            assert support[gene, 0] == sum(1 for m in masks.values() if m)
            assert support[gene, 1:].sum() == sum(bin(m).count("1") for m in masks.values())
            assert support[gene, 1:].sum() >= support[gene, 0]

    def test_qualified_colors(self):
        support = np.array([[3, 3, 0], [2, 1, 2], [0, 0, 0]])
        assert qualified_colors(support, 2) == [[1], [2], []]

    def test_node_mask(self, triangle_context):
        a = triangle_context.graph.node_indices["A"]
        assert node_mask(triangle_context, a, 1).positions() == [0, 2]


class TestPredicates:

    def test_monochromatic_is_never_colorful(self):
        assert not is_colorful(ColoredNodeSet([(0, 2), (1, 2), (2, 2)]))
        assert is_colorful(ColoredNodeSet([(0, 2), (1, 1), (2, 2)]))

    @pytest.mark.parametrize("colors, expected", [
        ((2, 2, 2), False),
        ((1, 1, 1), False),
        ((1, 1, 2), True),
        ((1, 2, 2), True),
        ((1, 2, 2, 2), False),
    ])
    def test_background_exclusive(self, colors, expected):
        node_set = ColoredNodeSet([(gene, color) for gene, color in enumerate(colors)])
        assert is_background_exclusive(node_set, 1) is expected


class TestScenarios:

    def test_triangle_without_common_sample(self, triangle_context):
        enumerator = SubnetworkEnumerator(triangle_context, 1)
        terminal, level_sizes = enumerator.run_search()
        assert level_sizes == [3]
        assert terminal.level == 0
        found = {names(triangle_context, s): profile.positions() for s, profile in terminal.items()}
        assert found == {("A", "B"): [0], ("A", "C"): [2], ("B", "C"): [1]}

    def test_triangle_with_common_sample(self, triangle_context_full):
        terminal, level_sizes = SubnetworkEnumerator(triangle_context_full, 1).run_search()
        assert level_sizes == [3, 1]
        [(node_set, profile)] = list(terminal.items())
        assert names(triangle_context_full, node_set) == ("A", "B", "C")
        assert profile.positions() == [3]

    def test_support_threshold_prunes_growth(self, triangle_context_full):
        terminal, level_sizes = SubnetworkEnumerator(triangle_context_full, 2).run_search()
        assert level_sizes == [3]
        assert all(profile.get_size() == 2 for _, profile in terminal.items())

    def test_threshold_above_cohort_size(self, triangle_context):
        enumerator = SubnetworkEnumerator(triangle_context, 4)
        terminal, level_sizes = enumerator.run_search()
        assert level_sizes == [0]
        assert len(terminal) == 0
        assert len(enumerator.levels) == 1

    def test_second_color_of_same_gene_is_not_a_new_node(self):
        context = make_context("A B\n", "s1 A MUT\ns1 A AMP\ns1 B MUT\n")
        terminal, level_sizes = SubnetworkEnumerator(context, 1).run_search()
        assert level_sizes == [2]
        assert all(len(s.genes) == 2 for s in terminal)


class TestColorfulModes:
    PATH = "A B\nB C\n"
    ALTERATIONS = "s1 A MUT\ns1 B MUT\ns1 C MUT\ns1 C AMP\n"

    def test_exact_mode_keeps_monochromatic(self):
        context = make_context(self.PATH, self.ALTERATIONS)
        _, level_sizes = SubnetworkEnumerator(context, 1, mode=MODE_EXACT).run_search()
        assert level_sizes == [3, 2]

    def test_plain_colorful(self):
        context = make_context(self.PATH, self.ALTERATIONS)
        terminal, level_sizes = SubnetworkEnumerator(context, 1, mode=MODE_COLORFUL).run_search()
        assert level_sizes == [3, 1]
        [node_set] = list(terminal)
        assert node_set.colors == frozenset({1, 2})

    def test_background_exclusive(self):
        context = make_context("A B\nB C\nC D\n", "s1 A EXPROUT\ns1 B MUT\ns1 C MUT\ns1 D MUT\n")
        terminal, level_sizes = SubnetworkEnumerator(context, 1, mode=MODE_BACKGROUND_EXCLUSIVE).run_search()
        assert level_sizes == [3, 1]
        [node_set] = list(terminal)
        assert names(context, node_set) == ("A", "B", "C")

    def test_custom_background(self):
        context = make_context("A B\nB C\n", "s1 A LOSS\ns1 B MUT\ns1 C MUT\n")
        _, level_sizes = SubnetworkEnumerator(context, 1, mode=MODE_BACKGROUND_EXCLUSIVE,
                                              background="LOSS").run_search()
        assert level_sizes == [2, 1]

    def test_unknown_background(self, triangle_context):
        with pytest.raises(ConfigurationError):
            SubnetworkEnumerator(triangle_context, 1, mode=MODE_BACKGROUND_EXCLUSIVE)


class TestMismatchTolerant:
    PATH = "A B\nB C\n"
    ALTERATIONS = "s1 A MUT\ns1 B MUT\ns1 C MUT\ns2 A MUT\ns2 B MUT\ns3 C MUT\n"

    def test_exact_search_stops_early(self):
        context = make_context(self.PATH, self.ALTERATIONS)
        _, level_sizes = SubnetworkEnumerator(context, 2).run_search()
        assert level_sizes == [1]

    def test_one_mismatch_allowed(self):
        context = make_context(self.PATH, self.ALTERATIONS)
        terminal, level_sizes = SubnetworkEnumerator(context, 2, mode=MODE_ALMOST, delta=1).run_search()
        assert level_sizes == [2, 1]
        [(node_set, profile)] = list(terminal.items())
        assert names(context, node_set) == ("A", "B", "C")
        exact, tolerant = profile
        assert exact.positions() == [0]
        assert tolerant.positions() == [0, 1]

    def test_extend_mismatch_profile(self):
        full = PatientBitmask(4)
        full.fill()
        profile = (full, full.copy())
        a = PatientBitmask.from_positions(4, [0, 1])
        b = PatientBitmask.from_positions(4, [1, 2])
        profile = extend_mismatch_profile(extend_mismatch_profile(profile, a), b)
        assert profile[0].positions() == [1]
        assert profile[1].positions() == [0, 1, 2]
        # inputs are untouched
        assert full.get_size() == 4

    @pytest.mark.parametrize("delta", [0, 3])
    def test_delta_range(self, triangle_context, delta):
        with pytest.raises(DeltaRangeError):
            SubnetworkEnumerator(triangle_context, 1, mode=MODE_ALMOST, delta=delta)


class TestInvariants:

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_reported_subnetworks(self, seed):
        context = make_context(*random_inputs(seed=seed))
        min_support = 3
        enumerator = SubnetworkEnumerator(context, min_support)
        terminal, level_sizes = enumerator.run_search()
        G = context.graph.to_networkx()
        assert level_sizes[-1] == len(terminal)
        for level in enumerator.levels:
            for node_set, profile in level.items():
                assert len(node_set) == level.level + 2
                assert len(node_set.genes) == len(node_set)
                assert nx.is_connected(G.subgraph(node_set.genes))
                expected = PatientBitmask(context.n_samples)
                expected.fill()
                for node in node_set:
                    expected.merge_bitmask(node_mask(context, node.gene, node.color))
                assert profile == expected
                assert profile.get_size() >= min_support

    def test_parallel_search_matches_serial(self):
        context = make_context(*random_inputs(seed=5))
        serial, serial_sizes = SubnetworkEnumerator(context, 3).run_search(n_proc=1)
        parallel, parallel_sizes = SubnetworkEnumerator(context, 3).run_search(n_proc=2)
        assert serial_sizes == parallel_sizes
        assert list(serial) == list(parallel)
        for node_set, profile in serial.items():
            assert parallel.profile(node_set) == profile

    def test_ilp_mode_is_rejected(self, triangle_context):
        with pytest.raises(ConfigurationError):
            SubnetworkEnumerator(triangle_context, 1, mode=MODE_ILP)

    def test_invalid_support(self, triangle_context):
        with pytest.raises(ConfigurationError):
            SubnetworkEnumerator(triangle_context, 0)

    def test_parameters_come_from_validated_config(self, triangle_context):
        enumerator = SubnetworkEnumerator(triangle_context, 2, mode=MODE_ALMOST, delta=2, alpha=0.5)
        assert enumerator.config.min_patient_support == enumerator.min_patient_support == 2
        assert enumerator.mode == enumerator.config.mode == MODE_ALMOST
        assert enumerator.delta == 2
        assert enumerator.node_threshold == 1
