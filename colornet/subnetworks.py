from collections import namedtuple

ColoredNode = namedtuple("ColoredNode", ["gene", "color"])


class ColoredNodeSet(frozenset):
    """
    Set of ColoredNode objects. Equality and hashing ignore construction order,
    so the same subnetwork reached over different join paths is one key.
    """

    def __new__(cls, nodes=()):
        return super().__new__(cls, (ColoredNode(*node) for node in nodes))

    def ordered(self):
        """
        :return: nodes sorted by (gene, color), the traversal order used for output
        """
        return tuple(sorted(self))

    @property
    def genes(self):
        return frozenset(node.gene for node in self)

    @property
    def colors(self):
        return frozenset(node.color for node in self)

    def extend(self, seed):
        """
        Union with a seed set
        :param seed: ColoredNodeSet
        :return: ColoredNodeSet
        """
        return ColoredNodeSet(frozenset.union(self, seed))

    def __repr__(self):
        return "ColoredNodeSet({0})".format(list(self.ordered()))


class SubnetworkIndex:
    """
    One growth level: canonical colored node set -> id -> owned profile.

    Insertion is first-writer-wins; a later derivation of an already present
    set is rejected and its profile is not stored.
    """

    def __init__(self, level):
        self.level = level
        self.subnetworks = {}
        self.profiles = {}

    def insert(self, node_set, profile):
        """
        :param node_set: ColoredNodeSet
        :param profile: PatientBitmask (or a tuple of them for the mismatch tolerant search)
        owned by this entry from now on
        :return: True if the set was not present before
        """
        if node_set in self.subnetworks:
            return False
        idx = len(self.subnetworks)
        self.subnetworks[node_set] = idx
        self.profiles[idx] = profile
        return True

    def profile(self, node_set):
        return self.profiles[self.subnetworks[node_set]]

    def items(self):
        """
        :return: (ColoredNodeSet, profile) pairs in insertion order
        """
        for node_set, idx in self.subnetworks.items():
            yield node_set, self.profiles[idx]

    def __contains__(self, node_set):
        return node_set in self.subnetworks

    def __len__(self):
        return len(self.subnetworks)

    def __iter__(self):
        return iter(self.subnetworks)

    @property
    def subnetwork_size(self):
        return self.level + 2
