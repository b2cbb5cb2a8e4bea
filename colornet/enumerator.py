import logging
import math
import multiprocessing as mp
import time

import numpy as np
from tqdm import tqdm

from colornet.bitmask import PatientBitmask
from colornet.config import (SearchConfig, MODE_EXACT, MODE_COLORFUL, MODE_BACKGROUND_EXCLUSIVE,
                             MODE_ALMOST, MODE_ILP, DEFAULT_BACKGROUND)
from colornet.exceptions import ConfigurationError
from colornet.subnetworks import ColoredNode, ColoredNodeSet, SubnetworkIndex

logger = logging.getLogger(__name__)


def color_support(context):
    """
    Per gene, per color number of supporting samples
    :param context: MutationContext
    :return: integer array of shape (V, n_colors + 1). Column c >= 1 counts the samples where the gene
    has color c, column 0 counts the samples where the gene has any color.
    """
    catalog = context.catalog
    support = np.zeros((context.graph.V, catalog.n_colors + 1), dtype=int)
    for gene, masks in enumerate(catalog.gene_alterations):
        for mask in masks.values():
            if mask:
                support[gene, 0] += 1
            for a in range(catalog.n_colors):
                if mask & (1 << a):
                    support[gene, a + 1] += 1
    return support


def qualified_colors(support, threshold):
    """
    :param support: output of color_support()
    :param threshold: minimal number of samples
    :return: list with the qualifying colors (1-based) of every gene
    """
    return [[int(c) + 1 for c in np.flatnonzero(row[1:] >= threshold)] for row in support]


def node_mask(context, gene, color):
    """
    :return: PatientBitmask of the samples where the gene carries the color
    """
    mask = PatientBitmask(context.n_samples)
    bit = 1 << (color - 1)
    for sample, colors in context.catalog.gene_alterations[gene].items():
        if colors & bit:
            mask.set_bit(sample, True)
    return mask


def is_colorful(node_set):
    # no monochromatic subnetworks
    return len(node_set.colors) >= 2


def is_background_exclusive(node_set, background):
    """
    :param background: color id of the background alteration
    :return: True if one or two nodes carry a color other than the background
    """
    others = sum(1 for node in node_set if node.color != background)
    return 0 < others <= 2


def support_mask(profile):
    """
    Mask of supporting samples: the profile itself, or the most tolerant mask of a mismatch profile
    """
    if isinstance(profile, PatientBitmask):
        return profile
    return profile[-1]


def extend_mismatch_profile(profile, mask):
    """
    Adds one node to a mismatch profile
    :param profile: tuple (M_0, ..., M_delta), M_j holds the samples missing at most j node colors
    :param mask: PatientBitmask of the samples carrying the new node's color
    :return: new tuple of freshly allocated masks
    """
    extended = []
    for j, current in enumerate(profile):
        m = PatientBitmask.copy_of(current)
        m.merge_bitmask(mask)
        if j > 0:
            missing = PatientBitmask.copy_of(profile[j - 1])
            missing.subtract_bitmask(mask)
            m.unite_bitmask(missing)
        extended.append(m)
    return tuple(extended)


class LevelJoiner:
    """
    Joins entries of one level with the level 0 seeds. Holds only what a worker process needs.
    """

    def __init__(self, seeds, level, min_patient_support, mode, background_color=None, node_masks=None):
        """
        :param seeds: list of (ColoredNodeSet, profile) pairs of level 0
        :param level: level being built
        :param min_patient_support: minimal support size
        :param mode: search mode
        :param background_color: color id for MODE_BACKGROUND_EXCLUSIVE
        :param node_masks: (gene, color) -> PatientBitmask, needed for MODE_ALMOST
        """
        self.seeds = seeds
        self.level = level
        self.min_patient_support = min_patient_support
        self.mode = mode
        self.background_color = background_color
        self.node_masks = node_masks

    def accepts(self, node_set):
        if self.mode == MODE_COLORFUL:
            return is_colorful(node_set)
        if self.mode == MODE_BACKGROUND_EXCLUSIVE:
            return is_background_exclusive(node_set, self.background_color)
        return True

    def extend(self, profile, seed_profile, node):
        if self.mode == MODE_ALMOST:
            return extend_mismatch_profile(profile, self.node_masks[node])
        candidate = PatientBitmask.copy_of(profile)
        candidate.merge_bitmask(seed_profile)
        return candidate

    def supported(self, profile):
        if self.mode == MODE_ALMOST:
            return profile[0].get_size() > 0 and profile[-1].get_size() >= self.min_patient_support
        return profile.get_size() >= self.min_patient_support

    def join(self, entries):
        """
        :param entries: iterable of (ColoredNodeSet, profile) pairs of the previous level
        :return: list of (ColoredNodeSet, profile) candidates of the next level, first derivation of each set only
        """
        found = {}
        for s1, profile in entries:
            genes = s1.genes
            for s2, seed_profile in self.seeds:
                added = s2 - s1
                # exactly one new node, on a gene not yet in the subnetwork
                if len(added) != 1:
                    continue
                node = next(iter(added))
                if node.gene in genes:
                    continue
                candidate = s1.extend(s2)
                if candidate in found:
                    continue
                new_profile = self.extend(profile, seed_profile, node)
                if self.supported(new_profile) and self.accepts(candidate):
                    found[candidate] = new_profile
        return list(found.items())


class SubnetworkEnumerator:
    def __init__(self, context, min_patient_support, mode=MODE_EXACT, background=DEFAULT_BACKGROUND,
                 delta=1, alpha=1.0):
        """
        :param context: MutationContext from data_preprocessing()
        :param min_patient_support: minimal number of samples in which all nodes of a subnetwork carry their colors
        :param mode: MODE_EXACT, MODE_COLORFUL, MODE_BACKGROUND_EXCLUSIVE or MODE_ALMOST
        :param background: background alteration name for MODE_BACKGROUND_EXCLUSIVE
        :param delta: allowed number of missing alterations per sample for MODE_ALMOST
        :param alpha: single gene qualification threshold is ceil(alpha * min_patient_support), MODE_ALMOST only
        """
        self.config = SearchConfig(min_patient_support, mode=mode, delta=delta, alpha=alpha, background=background)
        if self.config.mode == MODE_ILP:
            raise ConfigurationError("MODE_ILP is solved by colornet.ilp, not by the enumerator")
        self.context = context
        self.min_patient_support = self.config.min_patient_support
        self.mode = self.config.mode
        self.delta = self.config.delta
        self.background_color = None
        if self.mode == MODE_BACKGROUND_EXCLUSIVE:
            alterations = context.catalog.alterations
            if self.config.background not in alterations:
                raise ConfigurationError("Background alteration '{0}' does not occur in the alteration file".format(
                    self.config.background))
            self.background_color = alterations[self.config.background] + 1
        if self.mode == MODE_ALMOST:
            self.node_threshold = math.ceil(self.config.alpha * self.min_patient_support)
        else:
            self.node_threshold = self.min_patient_support
        self.support = color_support(context)
        self.levels = []
        self.node_masks = {}

    def seed(self):
        """
        Builds level 0: colored edges whose joint support reaches the threshold
        :return: SubnetworkIndex of level 0
        """
        G = self.context.graph
        colors = qualified_colors(self.support, self.node_threshold)
        logger.info("There are %d nodes where at least %d patients are mutated.",
                    sum(1 for c in colors if c), self.node_threshold)
        self.node_masks = {}
        for gene, gene_colors in enumerate(colors):
            for color in gene_colors:
                self.node_masks[ColoredNode(gene, color)] = node_mask(self.context, gene, color)

        joiner = LevelJoiner([], 0, self.min_patient_support, self.mode, node_masks=self.node_masks)
        seeds = SubnetworkIndex(0)
        for g1, g2 in G.edges():
            for c1 in colors[g1]:
                for c2 in colors[g2]:
                    n1 = ColoredNode(g1, c1)
                    n2 = ColoredNode(g2, c2)
                    if self.mode == MODE_ALMOST:
                        profile = self.empty_mismatch_profile()
                        profile = extend_mismatch_profile(profile, self.node_masks[n1])
                        profile = extend_mismatch_profile(profile, self.node_masks[n2])
                    else:
                        profile = PatientBitmask.copy_of(self.node_masks[n1])
                        profile.merge_bitmask(self.node_masks[n2])
                    if joiner.supported(profile):
                        seeds.insert(ColoredNodeSet((n1, n2)), profile)
        logger.info("There are %d edges where at least %d patients are mutated at each node.",
                    len(seeds), self.min_patient_support)
        return seeds

    def empty_mismatch_profile(self):
        profile = []
        for _ in range(self.delta + 1):
            m = PatientBitmask(self.context.n_samples)
            m.fill()
            profile.append(m)
        return tuple(profile)

    def grow(self, previous, seeds, n_proc=1, verbose=False):
        """
        Joins every entry of the previous level with every seed
        :param previous: SubnetworkIndex of level k - 1
        :param seeds: SubnetworkIndex of level 0
        :param n_proc: number of processes
        :param verbose: show a progress bar
        :return: SubnetworkIndex of level k
        """
        joiner = LevelJoiner(list(seeds.items()), previous.level + 1, self.min_patient_support, self.mode,
                             self.background_color, self.node_masks)
        entries = list(previous.items())
        if n_proc > 1 and len(entries) > 1:
            n_shards = min(n_proc, len(entries))
            size = math.ceil(len(entries) / n_shards)
            shards = [entries[i:i + size] for i in range(0, len(entries), size)]
            with mp.Pool(processes=len(shards)) as pool:
                results = pool.map(joiner.join, shards)
        else:
            results = [joiner.join(tqdm(entries, disable=not verbose))]

        level = SubnetworkIndex(previous.level + 1)
        for shard in results:
            for candidate, profile in shard:
                level.insert(candidate, profile)
        return level

    def run_search(self, n_proc=1, verbose=False):
        """
        Level-wise search for the largest subnetworks

        :param n_proc: number of processes used to join a level (default 1)
        :param verbose: set true to show a progress bar for every level
        :return:
        terminal: SubnetworkIndex of the last non-empty level (level 0 if nothing was found)
        level_sizes: number of subnetworks on every level
        """
        if n_proc > mp.cpu_count():
            logger.warning("n_proc=%d exceeds the %d available cores, using %d", n_proc, mp.cpu_count(),
                           mp.cpu_count())
            n_proc = mp.cpu_count()
        st = time.time()
        seeds = self.seed()
        self.levels = [seeds]
        # an empty level 0 is terminal as well
        while len(self.levels[-1]) > 0:
            level = self.grow(self.levels[-1], seeds, n_proc=n_proc, verbose=verbose)
            if len(level) == 0:
                break
            logger.info("There are %d subnetworks of size %d, where at least %d patients are mutated at each node.",
                        len(level), level.subnetwork_size, self.min_patient_support)
            self.levels.append(level)
        terminal = self.levels[-1]
        if len(terminal):
            logger.info("The maximum subnetwork size is %d.", terminal.subnetwork_size)
        else:
            logger.info("No subnetwork reaches a support of %d patients.", self.min_patient_support)
        logger.info("Search took %.2f seconds", time.time() - st)
        return terminal, [len(level) for level in self.levels]
