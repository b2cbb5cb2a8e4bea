import csv
import logging
import time
from dataclasses import dataclass

import networkx as nx
import pandas as pd

from colornet.exceptions import InputFileError

logger = logging.getLogger(__name__)

MAX_ALTERATION_TYPES = 32


class NameCatalog:
    """
    Dense 0-based ids for names, assigned in order of first appearance
    """

    def __init__(self):
        self.names = []
        self.indices = {}

    def add(self, name):
        idx = self.indices.get(name)
        if idx is None:
            idx = len(self.names)
            self.indices[name] = idx
            self.names.append(name)
        return idx

    def __len__(self):
        return len(self.names)

    def __contains__(self, name):
        return name in self.indices

    def __getitem__(self, name):
        return self.indices[name]


class Graph:
    """
    Undirected gene network with dense node ids

    Attributes:
    -----------
    node_names - node name for every node id
    node_indices - reverse mapping from node name to node id
    neighbours - adjacency list of every node
    idx_in_neighbour_list - idx_in_neighbour_list[a][b] = c: in node a's neighbour list, node b is at position c
    incoming_edges - incoming_edges[a][b] = c: there is an edge into a from position c of b's neighbour list
    """

    def __init__(self, edges):
        """
        :param edges: iterable of (name, name) pairs; duplicates and self loops are discarded
        """
        self.node_names = []
        self.node_indices = {}
        unique_edges = {}
        for u, v in edges:
            if u == v:
                continue
            e = (u, v) if u < v else (v, u)
            if e in unique_edges:
                continue
            for name in e:
                if name not in self.node_indices:
                    self.node_indices[name] = len(self.node_names)
                    self.node_names.append(name)
            unique_edges[e] = None

        self.V = len(self.node_names)
        self.E = len(unique_edges)
        self.neighbours = [[] for _ in range(self.V)]
        self.idx_in_neighbour_list = [dict() for _ in range(self.V)]
        self.incoming_edges = [dict() for _ in range(self.V)]
        for a_name, b_name in unique_edges:
            a = self.node_indices[a_name]
            b = self.node_indices[b_name]
            pos_a = len(self.neighbours[a])
            pos_b = len(self.neighbours[b])
            self.neighbours[a].append(b)
            self.neighbours[b].append(a)
            self.idx_in_neighbour_list[a][b] = pos_a
            self.idx_in_neighbour_list[b][a] = pos_b
            self.incoming_edges[b][a] = pos_a
            self.incoming_edges[a][b] = pos_b

    def edges(self):
        """
        :return: generator over undirected edges (a, b) with a < b
        """
        for a in range(self.V):
            for b in self.neighbours[a]:
                if b > a:
                    yield a, b

    def to_networkx(self):
        G = nx.Graph()
        G.add_nodes_from(range(self.V))
        G.add_edges_from(self.edges())
        return G

    def connected_components(self):
        """
        Labels the connected components of the network
        :return: cc_index: component id for every node
        cc_sizes: size of every component
        """
        cc_index = [-1] * self.V
        cc_sizes = []
        components = sorted(nx.connected_components(self.to_networkx()), key=min)
        for i, component in enumerate(components):
            for node in component:
                cc_index[node] = i
            cc_sizes.append(len(component))
        return cc_index, cc_sizes


class AlterationCatalog:
    """
    Sample, gene and alteration name catalogs plus the per gene color masks

    Attributes:
    -----------
    samples, genes, alterations - NameCatalog objects
    gene_alterations - gene_alterations[node][sample] = mask: OR of the bits (1 << alteration id)
    observed for that gene in that sample. Indexed by network node id.
    """

    def __init__(self, rows, graph):
        """
        :param rows: sequence of (sample, gene, alteration type) triples
        :param graph: Graph, rows with genes outside of it are skipped
        """
        self.samples = NameCatalog()
        self.genes = NameCatalog()
        self.alterations = NameCatalog()
        for sample, gene, alteration in rows:
            if gene not in graph.node_indices:
                continue
            self.samples.add(sample)
            self.genes.add(gene)
            self.alterations.add(alteration)
        if len(self.alterations) > MAX_ALTERATION_TYPES:
            raise InputFileError("At most {0} different alteration types are supported, found {1}".format(
                MAX_ALTERATION_TYPES, len(self.alterations)))

        self.gene_alterations = [dict() for _ in range(graph.V)]
        for sample, gene, alteration in rows:
            node = graph.node_indices.get(gene)
            if node is None:
                continue
            sample_idx = self.samples[sample]
            masks = self.gene_alterations[node]
            masks[sample_idx] = masks.get(sample_idx, 0) | (1 << self.alterations[alteration])

    @property
    def n_samples(self):
        return len(self.samples)

    @property
    def n_colors(self):
        return len(self.alterations)

    def color_name(self, color):
        # colors are 1-based, 0 is the "no color" sentinel
        return self.alterations.names[color - 1]


@dataclass(frozen=True)
class MutationContext:
    """
    Read-only input of a search: the network and the alteration catalog
    """
    graph: Graph
    catalog: AlterationCatalog

    @property
    def n_samples(self):
        return self.catalog.n_samples

    @property
    def n_colors(self):
        return self.catalog.n_colors


def open_file(file_name, width, **kwargs):
    """
    Reads whitespace separated records given the path or directly the object
    :param file_name: path or file-like object
    :param width: number of leading tokens kept per line; further tokens are ignored, shorter lines are skipped
    :param kwargs: other pandas.read_csv() parameters
    :return: pandas dataframe with columns 0..width-1
    """
    columns = list(range(width))
    if not isinstance(file_name, str):  # the file is StringIO
        file_name.seek(0)
    try:
        file = pd.read_csv(file_name, sep=r"\s+", header=None, names=columns, usecols=columns, index_col=False,
                           dtype=str, keep_default_na=False, quoting=csv.QUOTE_NONE, low_memory=False, **kwargs)
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=columns, dtype=str)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise InputFileError("Cannot read file '{0}'. Please make sure the file exists and is a plain text "
                             "file. ({1})".format(file_name, e))
    # short lines are padded with empty fields
    file = file.dropna()
    file = file[(file != "").all(axis=1)]
    return file.reset_index(drop=True)


def read_network(path_net):
    """
    Reads the network as a collection of undirected edges (pairs of node names)
    :param path_net: path or file-like object
    :return: Graph
    """
    st = time.time()
    net = open_file(path_net, 2)
    G = Graph(zip(net[0].to_list(), net[1].to_list()))
    if G.V == 0:
        raise InputFileError("The network file '{0}' does not contain any edge".format(path_net))
    logger.info("Reading the network done. (%.2f seconds)", time.time() - st)
    logger.info("Input network contains %d nodes and %d undirected edges.", G.V, G.E)
    return G


def read_alterations(path_alt, G):
    """
    Reads "sample gene alterationType" triples
    :param path_alt: path or file-like object
    :param G: Graph used to filter genes
    :return: AlterationCatalog
    """
    st = time.time()
    alt = open_file(path_alt, 3)
    catalog = AlterationCatalog(list(alt.itertuples(index=False, name=None)), G)
    logger.info("Reading the alteration profiles done. (%.2f seconds)", time.time() - st)
    logger.info("There are %d samples, with a total of %d genes, harboring %d different alterations.",
                len(catalog.samples), len(catalog.genes), len(catalog.alterations))
    return catalog


def data_preprocessing(path_net, path_alt):
    """
    Raw data processing for further analysis

    :param path_net: network file: whitespace separated pairs of gene names, one edge per line
    :param path_alt: alteration file: whitespace separated "sample gene alterationType" triples
    :return: MutationContext with the Graph and the AlterationCatalog
    """
    G = read_network(path_net)
    _, cc_sizes = G.connected_components()
    logger.info("Input network contains %d connected components.", len(cc_sizes))
    catalog = read_alterations(path_alt, G)
    return MutationContext(G, catalog)
