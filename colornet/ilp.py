"""
Maximum supported connected subnetwork as a mixed-integer program.

Formulation (V genes, n samples, every undirected edge as two arcs):
    Variables: X_j in {0,1}  gene j selected
               P_i in {0,1}  sample i supports the subnetwork
               S_j in {0,1}  gene j is the seed of the flow
               Se_j in [0,V] flow from the super source into gene j
               F_a in [0,V]  flow on arc a

    max  sum_j X_j
    s.t. sum_i P_i >= t
         X_j = 0                                   if no color of gene j reaches t samples
         P_i + X_j <= 1                            if gene j is unaltered in sample i
         P_i + P_i' + X_j <= 2                     if samples i, i' share no color of gene j
         sum_j S_j = 1,  X_j >= S_j,  Se_j <= V * S_j
         sum_j Se_j = sum_j X_j
         Se_j + inflow_j <= V * X_j
         Se_j + inflow_j - outflow_j = X_j         (every selected gene consumes one unit)

The unit consumption forces every selected gene to be reached from the seed, hence a connected subnetwork.
"""

import logging
import time
from dataclasses import dataclass, field

import numpy as np
from scipy.optimize import milp, LinearConstraint, Bounds
from scipy.sparse import coo_matrix

from colornet.config import MAX_SOLVER_THREADS
from colornet.exceptions import SolverError

logger = logging.getLogger(__name__)

TIME_LIMIT = 3600


@dataclass
class ILPSolution:
    feasible: bool
    seed: int
    genes: list
    samples: list
    flows: dict = field(default_factory=dict)
    objective: float = 0.0


class _Rows:
    # sparse constraint rows collected in coordinate format
    def __init__(self):
        self.rows, self.cols, self.vals = [], [], []
        self.lb, self.ub = [], []

    def add(self, coefs, lb, ub):
        r = len(self.lb)
        for col, val in coefs:
            self.rows.append(r)
            self.cols.append(col)
            self.vals.append(val)
        self.lb.append(lb)
        self.ub.append(ub)

    def constraint(self, n_vars):
        A = coo_matrix((self.vals, (self.rows, self.cols)), shape=(len(self.lb), n_vars)).tocsr()
        return LinearConstraint(A, np.asarray(self.lb, dtype=float), np.asarray(self.ub, dtype=float))


class MaxSubnetworkILP:
    def __init__(self, context, min_patient_support):
        """
        :param context: MutationContext
        :param min_patient_support: minimal number of supporting samples t
        """
        self.context = context
        self.t = min_patient_support
        G = context.graph
        self.V = G.V
        self.n = context.n_samples
        self.arc_offset = np.concatenate([[0], np.cumsum([len(nb) for nb in G.neighbours])]).astype(int)
        self.n_arcs = int(self.arc_offset[-1])
        # variable blocks
        self.x0 = 0
        self.p0 = self.V
        self.s0 = self.p0 + self.n
        self.se0 = self.s0 + self.V
        self.f0 = self.se0 + self.V
        self.n_vars = self.f0 + self.n_arcs

    def arc(self, j, n_idx):
        return self.f0 + self.arc_offset[j] + n_idx

    def build(self):
        """
        :return: objective vector, LinearConstraint, integrality vector, Bounds
        """
        st = time.time()
        V, n = self.V, self.n
        G = self.context.graph
        gene_alterations = self.context.catalog.gene_alterations
        n_colors = self.context.n_colors
        rows = _Rows()

        c = np.zeros(self.n_vars)
        c[self.x0:self.x0 + V] = -1.0

        rows.add([(self.p0 + i, 1.0) for i in range(n)], self.t, np.inf)

        for j in range(V):
            masks = gene_alterations[j]
            best = max([sum(1 for m in masks.values() if m & (1 << a)) for a in range(n_colors)] or [0])
            if best < self.t:
                rows.add([(self.x0 + j, 1.0)], 0, 0)
                continue
            for i in range(n):
                if not masks.get(i, 0):
                    rows.add([(self.p0 + i, 1.0), (self.x0 + j, 1.0)], -np.inf, 1)
            altered = sorted(i for i, m in masks.items() if m)
            for k, i in enumerate(altered):
                for i1 in altered[k + 1:]:
                    if not masks[i] & masks[i1]:
                        rows.add([(self.p0 + i, 1.0), (self.p0 + i1, 1.0), (self.x0 + j, 1.0)], -np.inf, 2)

        rows.add([(self.s0 + j, 1.0) for j in range(V)], 1, 1)
        for j in range(V):
            rows.add([(self.x0 + j, 1.0), (self.s0 + j, -1.0)], 0, np.inf)
            rows.add([(self.se0 + j, 1.0), (self.s0 + j, -float(V))], -np.inf, 0)
        rows.add([(self.se0 + j, 1.0) for j in range(V)] + [(self.x0 + j, -1.0) for j in range(V)], 0, 0)

        for j in range(V):
            inflow = [(self.arc(b, pos), 1.0) for b, pos in G.incoming_edges[j].items()]
            outflow = [(self.arc(j, pos), -1.0) for pos in range(len(G.neighbours[j]))]
            rows.add([(self.se0 + j, 1.0)] + inflow + [(self.x0 + j, -float(V))], -np.inf, 0)
            rows.add([(self.se0 + j, 1.0)] + inflow + outflow + [(self.x0 + j, -1.0)], 0, 0)

        integrality = np.zeros(self.n_vars)
        integrality[:self.se0] = 1
        ub = np.full(self.n_vars, float(V))
        ub[:self.se0] = 1
        bounds = Bounds(lb=np.zeros(self.n_vars), ub=ub)
        logger.info("Constructed %d variables and %d constraints (%.2f seconds)", self.n_vars, len(rows.lb),
                    time.time() - st)
        return c, rows.constraint(self.n_vars), integrality, bounds

    def solve(self, time_limit=TIME_LIMIT, verbose=False):
        """
        :param time_limit: solver time limit in seconds
        :param verbose: print solver output
        :return: ILPSolution or None if infeasible or timed out without a solution
        """
        try:
            c, constraints, integrality, bounds = self.build()
            result = milp(c=c, constraints=constraints, integrality=integrality, bounds=bounds,
                          options={"time_limit": time_limit, "disp": verbose})
        except (ValueError, TypeError, MemoryError) as e:
            raise SolverError("Error occurs in ILP construction and solving: {0}".format(e)) from e

        if result.x is None:
            logger.info("ILP infeasible or timed out: %s", result.message)
            return None
        x = result.x
        G = self.context.graph
        samples = self.context.catalog.samples.names
        seed = int(np.argmax(x[self.s0:self.s0 + self.V]))
        genes = [j for j in range(self.V) if x[self.x0 + j] > 0.5]
        patients = [samples[i] for i in range(self.n) if x[self.p0 + i] > 0.5]
        flows = {}
        for j in range(self.V):
            for pos, sink in enumerate(G.neighbours[j]):
                value = x[self.arc(j, pos)]
                if value > 1e-6:
                    flows[(j, sink)] = float(value)
        return ILPSolution(feasible=result.status == 0, seed=seed, genes=genes, samples=patients, flows=flows,
                           objective=-float(result.fun))


def run_ilp_search(context, min_patient_support, n_threads=MAX_SOLVER_THREADS, time_limit=TIME_LIMIT,
                   verbose=False):
    """
    Solves the maximum subnetwork ILP; solver failures are logged and give None
    :param n_threads: requested solver threads, clamped at 32
    """
    n_threads = min(n_threads, MAX_SOLVER_THREADS)
    # HiGHS through scipy picks its own thread count
    logger.debug("Requested %d solver threads", n_threads)
    try:
        return MaxSubnetworkILP(context, min_patient_support).solve(time_limit=time_limit, verbose=verbose)
    except SolverError as e:
        logger.error("%s", e)
        return None
