#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging

import pandas as pd
import matplotlib.pyplot as plt
import mygene
import networkx as nx
import seaborn as sns
import gseapy

from colornet.enumerator import support_mask

logger = logging.getLogger(__name__)

COLUMNS = ["Solution", "Nodes", "Color", "SampleID"]


class results_analysis():
    """
        Performs analysis over the output of SubnetworkEnumerator.run_search()

        Attributes:
        -----------
        result - the terminal SubnetworkIndex returned by run_search()
        context - MutationContext from data_preprocessing() function
        convert - indicates if gene IDs should be converted to gene names
        for the further results analysis (default - False)
        origID - indicates the original gene ids used. This field is mandatory for the enrichment analysis.
        Possible values:
            'entrezgene', 'ensembl.gene', 'symbol', 'refseq', 'unigene', etc
            for all possibe option please check  the reference for MyGene.info gene query web service
            http://docs.mygene.info/en/latest/doc/query_service.html#available_fields
    """

    def __init__(self, result, context, convert=False, origID=None, species='human'):
        self.result = result
        self.context = context
        self.convert = convert
        self.origID = origID
        catalog = context.catalog
        node_names = context.graph.node_names
        # one entry per subnetwork: ordered colored nodes, gene names, color names, sample names
        self.solutions = []
        for node_set, profile in result.items():
            nodes = node_set.ordered()
            self.solutions.append({
                "nodes": nodes,
                "genes": [node_names[node.gene] for node in nodes],
                "colors": [catalog.color_name(node.color) for node in nodes],
                "samples": [catalog.samples.names[i] for i in support_mask(profile).positions()],
            })

        self.mapping = None
        if convert:
            assert origID is not None, "Please specify the original gene ID or set 'convert' to False"
            all_genes = sorted({g for s in self.solutions for g in s["genes"]})
            mg = mygene.MyGeneInfo()
            # set delay - if querying more than 1k genes it can get super slow
            mg.delay = 0.1
            out = mg.querymany(all_genes, scopes=self.origID, fields='symbol', species=species, verbose=False)
            mapping = dict()
            for line in out:
                try:
                    mapping[line["query"]] = line["symbol"]
                except KeyError:
                    logger.warning("%s was not mapped to any gene name", line["query"])
                    mapping[line["query"]] = line["query"]
            self.mapping = mapping

    def gene_names(self, solution):
        genes = self.solutions[solution]["genes"]
        if self.mapping is not None:
            return [self.mapping.get(g, g) for g in genes]
        return genes

    def to_frame(self):
        rows = []
        for i, s in enumerate(self.solutions):
            rows.append(["Solution_{0}".format(i + 1), ":".join(self.gene_names(i)), ":".join(s["colors"]),
                         ":".join(s["samples"])])
        return pd.DataFrame(rows, columns=COLUMNS)

    def save(self, output):
        """
        Saves the results in a tab separated file, one row per subnetwork

        Attributes:
        -----------
        output - the output file name
        """
        self.to_frame().to_csv(output, sep="\t", index=False)
        logger.info("%d solution(s) written to '%s'", len(self.solutions), output)

    def show_networks(self, solution=0, output=None):
        """
        Shows one subnetwork, nodes coloured by their alteration type

        Attributes:
        -----------
        solution - index of the subnetwork
        output - str or PathLike or file-like object (png, eps, pdf, etc)
        """
        s = self.solutions[solution]
        G_small = nx.subgraph(self.context.graph.to_networkx(), [node.gene for node in s["nodes"]])
        labels = dict(zip([node.gene for node in s["nodes"]], self.gene_names(solution)))
        G_small = nx.relabel_nodes(G_small, labels)
        alterations = self.context.catalog.alterations.names
        palette = dict(zip(alterations, sns.color_palette("tab10", len(alterations))))
        node_colors = dict(zip(self.gene_names(solution), s["colors"]))

        plt.rc('font', size=20)  # controls default text sizes
        fig = plt.figure(figsize=(15, 15))
        pos = nx.spring_layout(G_small, seed=0)
        nx.draw_networkx_edges(G_small, pos)
        nx.draw_networkx_nodes(G_small, pos=pos, node_color=[palette[node_colors[g]] for g in G_small.nodes],
                               node_size=1700, alpha=.7)
        nx.draw_networkx_labels(G_small, pos, font_size=22, font_weight="heavy")
        for name in sorted(set(s["colors"])):
            plt.scatter([], [], color=palette[name], label=name)
        plt.legend()
        plt.axis('off')
        fig.tight_layout()
        # save if required
        if output is not None:
            plt.savefig(output, dpi=300)
        plt.show()
        plt.close(fig)

    def alteration_matrix(self, solution=0):
        """
        :return: samples x genes data frame, 1 where the sample carries the node's alteration
        """
        s = self.solutions[solution]
        gene_alterations = self.context.catalog.gene_alterations
        samples = self.context.catalog.samples.names
        data = [[int(bool(gene_alterations[node.gene].get(i, 0) & (1 << (node.color - 1)))) for node in s["nodes"]]
                for i in range(len(samples))]
        return pd.DataFrame(data, index=samples, columns=self.gene_names(solution))

    def show_alteration_map(self, solution=0, output=None):
        """
        Heatmap of the alterations of one subnetwork over all samples, supporting samples first

        Attributes:
        -----------
        solution - index of the subnetwork
        output - str or PathLike or file-like object (png, eps, pdf, etc)
        """
        matrix = self.alteration_matrix(solution)
        supporting = self.solutions[solution]["samples"]
        order = supporting + [p for p in matrix.index if p not in set(supporting)]
        matrix = matrix.loc[order]

        plt.rc('font', size=10)
        fig = plt.figure(figsize=(10, 15))
        ax = sns.heatmap(matrix, cmap="Blues", cbar=False, linewidths=.5)
        ax.set_xlabel("Genes")
        ax.set_ylabel("Patients")
        if output is not None:
            plt.savefig(output, dpi=300)
        plt.show()
        plt.close(fig)

    def enrichment_analysis(self, library, output):
        """
        Saves the results of enrichment analysis over the genes of all subnetworks

        Attributes:
        -----------
        library - Enrichr library to be used. Recommendations:
            - 'GO_Molecular_Function_2018'
            - 'GO_Biological_Process_2018'
            - 'GO_Cellular_Component_2018'
            for more options check available libraries by typing gseapy.get_library_name()

        output - directory name where results should be saved
        """
        libs = gseapy.get_library_name()
        assert library in libs, "the library is not available, check gseapy.get_library_name() for available options"
        assert (self.convert == True) or (
                self.origID == "symbol"), "EnrichR accepts only gene names as an input, thus please set 'convert' to True and indicate the original gene ID"

        all_genes_names = sorted({g for i in range(len(self.solutions)) for g in self.gene_names(i)})
        res = gseapy.enrichr(gene_list=all_genes_names, description='subnetwork', gene_sets=library, cutoff=0.05,
                             outdir=output)
        return res.results

    @staticmethod
    def level_sizes_plot(level_sizes, output=None):
        """
        Shows the number of subnetworks found on every growth level

        Attributes:
        -----------
        level_sizes - second output of run_search() function

        output - file name where the plot should be saved
        """
        fig = plt.figure(figsize=(10, 6))
        sns.set(style="whitegrid")
        plt.rc('font', size=13)  # controls default text sizes
        wg = pd.DataFrame({"subnetwork size": [k + 2 for k in range(len(level_sizes))],
                           "subnetworks": level_sizes})
        ax = sns.lineplot(data=wg, x="subnetwork size", y="subnetworks", linewidth=2.5, marker="o")
        ax.set(yscale="symlog")
        if output is not None:
            plt.savefig(output)
        plt.show()
        plt.close(fig)


def save_ilp_solution(solution, context, output):
    """
    Writes the ILP solution report
    :param solution: ILPSolution from colornet.ilp
    :param context: MutationContext
    :param output: output file name
    """
    names = context.graph.node_names
    with open(output, "w") as fout:
        if solution.feasible:
            fout.write("Solution is feasible.\n")
        fout.write("Seed: {0}, {1}\n".format(solution.seed, names[solution.seed]))
        fout.write("Genes:")
        for j in solution.genes:
            fout.write("\n{0},{1}".format(j, names[j]))
        fout.write("\nPatients:")
        for p in solution.samples:
            fout.write("\n{0}".format(p))
        fout.write("\nFlow Values:\n")
        for (u, v), value in sorted(solution.flows.items()):
            fout.write("c[{0}][{1}] = {2:f}\n".format(u, v, value))
    logger.info("ILP solution written to '%s'", output)
