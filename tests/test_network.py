import unittest

from api.config import Settings
from api.services.enrichment import NODE_COLORS
from api.services.network import (
    MultiPersonQuery,
    NetworkQuery,
    PersonNotFoundError,
    build_multi_person_network,
    explore_person_network,
    explore_recursive_network,
    find_connection_path,
)
from tests.fixtures import SampleDatabaseMixin


class ExplorePersonNetworkTest(SampleDatabaseMixin, unittest.TestCase):
    def setUp(self):
        self.settings = Settings(db_path=self.db_path)

    def explore(self, **kwargs):
        kwargs.setdefault("relation_types", ["kinship"])
        return explore_person_network(self.db, NetworkQuery(person_id=1762, **kwargs), self.settings)

    def test_depth_one_kinship(self):
        result = self.explore()
        self.assertEqual(len(result.nodes), 5)
        self.assertEqual(len(result.edges), 5)
        self.assertEqual(result.metrics.total_persons, 5)
        self.assertEqual(result.metrics.discovered_persons, 4)
        self.assertEqual(result.metrics.query_persons, 1)
        self.assertEqual(result.bridge_nodes, [])
        self.assertEqual(result.direct_connections, [])
        self.assertFalse(result.truncated)

    def test_nodes_are_presented(self):
        nodes = {n.id: n for n in self.explore().nodes}
        seed = nodes[1762]
        self.assertTrue(seed.is_seed)
        self.assertEqual(seed.node_type, "seed")
        self.assertEqual(seed.color, NODE_COLORS["seed"])
        self.assertEqual(seed.label, "王安石")
        self.assertEqual(nodes[999].label, "Person 999")
        self.assertEqual(nodes[100].depth, 1)
        self.assertEqual(nodes[100].node_type, "kinship")
        self.assertLess(nodes[100].size, seed.size)

    def test_seed_comes_first(self):
        self.assertEqual(self.explore(depth=2).nodes[0].id, 1762)

    def test_edges_are_enriched(self):
        for edge in self.explore().edges:
            self.assertIsNotNone(edge.color)
            self.assertIsNotNone(edge.edge_label)
            self.assertIsNotNone(edge.weight)

    def test_all_relation_types(self):
        result = self.explore(relation_types=["kinship", "association", "office"])
        self.assertEqual({e.edge_type for e in result.edges}, {"kinship", "association", "office"})
        self.assertEqual(result.metrics.edge_types["office"], 1)

    def test_unknown_person(self):
        with self.assertRaises(PersonNotFoundError):
            explore_person_network(self.db, NetworkQuery(person_id=123456), self.settings)

    def test_depth_above_limit(self):
        with self.assertRaises(ValueError):
            self.explore(depth=self.settings.max_depth + 1)

    def test_settings_node_limit(self):
        settings = Settings(db_path=self.db_path, max_nodes=3)
        result = explore_person_network(
            self.db, NetworkQuery(person_id=1762, depth=2, relation_types=["kinship"]), settings
        )
        self.assertTrue(result.truncated)
        self.assertEqual(len(result.nodes), 3)

    def test_request_cannot_raise_node_limit(self):
        settings = Settings(db_path=self.db_path, max_nodes=3)
        result = explore_person_network(
            self.db,
            NetworkQuery(person_id=1762, depth=2, relation_types=["kinship"], max_nodes=1000),
            settings,
        )
        self.assertTrue(result.truncated)
        self.assertEqual(len(result.nodes), 3)

    def test_proximity_radius(self):
        result = self.explore(proximity_radius=1.0)
        self.assertEqual({n.id for n in result.nodes}, {1762, 101})
        self.assertEqual(len(result.edges), 2)

    def test_proximity_without_seed_location(self):
        result = explore_person_network(
            self.db,
            NetworkQuery(person_id=800, depth=2, relation_types=["kinship"], proximity_radius=1.0),
            self.settings,
        )
        self.assertEqual(len(result.nodes), 3)


class MultiPersonNetworkTest(SampleDatabaseMixin, unittest.TestCase):
    def setUp(self):
        self.settings = Settings(db_path=self.db_path)

    def build(self, person_ids, **kwargs):
        kwargs.setdefault("relation_types", ["kinship"])
        return build_multi_person_network(
            self.db, MultiPersonQuery(person_ids=person_ids, **kwargs), self.settings
        )

    def test_bridge_and_pathway(self):
        result = self.build([600, 700])
        self.assertEqual([b.person_id for b in result.bridge_nodes], [650])
        self.assertEqual(result.bridge_nodes[0].label, "李氏")
        self.assertEqual(result.metrics.bridge_nodes, 1)
        self.assertEqual(result.direct_connections, [])
        self.assertEqual([p.path for p in result.pathways], [[600, 650, 700]])

    def test_unconnected_seeds(self):
        result = self.build([400, 500], depth=2)
        self.assertEqual(result.metrics.direct_connections, 0)
        self.assertEqual(result.bridge_nodes, [])
        self.assertEqual(result.pathways, [])
        self.assertEqual({n.id for n in result.nodes}, {400, 500, 501})

    def test_direct_connection(self):
        result = self.build([1762, 100])
        self.assertEqual(len(result.direct_connections), 1)
        connection = result.direct_connections[0]
        self.assertEqual((connection.person1, connection.person2), (100, 1762))
        self.assertEqual(connection.connection_strength, 2)
        self.assertEqual(result.metrics.direct_connections, 1)

    def test_missing_seeds_are_dropped(self):
        result = self.build([600, 700, 123456])
        self.assertEqual(result.seed_ids, [600, 700])

    def test_no_seed_found(self):
        with self.assertRaises(PersonNotFoundError):
            self.build([123456, 123457])

    def test_needs_two_persons(self):
        with self.assertRaises(ValueError):
            self.build([600])
        with self.assertRaises(ValueError):
            self.build([600, 600])

    def test_filters_drop_discovered_persons(self):
        result = self.build([600, 700], include_female=False)
        self.assertEqual({n.id for n in result.nodes}, {600, 601, 700})
        self.assertEqual(result.bridge_nodes, [])

    def test_depth_zero(self):
        result = self.build([1762, 100], depth=0)
        self.assertEqual({n.id for n in result.nodes}, {1762, 100})
        self.assertEqual(len(result.edges), 2)

    def test_request_cannot_raise_node_limit(self):
        settings = Settings(db_path=self.db_path, max_nodes=3)
        result = build_multi_person_network(
            self.db,
            MultiPersonQuery(person_ids=[1762, 200], depth=2, relation_types=["kinship"], max_nodes=1000),
            settings,
        )
        self.assertTrue(result.truncated)
        self.assertEqual(len(result.nodes), 3)

    def test_bridge_statistics_and_cut_persons(self):
        result = self.build([600, 700], exact_bridges=True)
        self.assertEqual(result.articulation_points, [650])
        self.assertEqual(result.bridge_statistics["total"], 1)
        self.assertEqual(result.bridge_statistics["by_type"]["kinship"], 1)
        self.assertEqual(self.build([600, 700]).articulation_points, [])

    def test_bridge_filters(self):
        by_type = self.build([600, 700], bridge_type="association")
        self.assertEqual(by_type.bridge_nodes, [])
        self.assertEqual(by_type.metrics.bridge_nodes, 0)
        self.assertEqual(by_type.bridge_statistics["total"], 0)
        self.assertEqual(self.build([600, 700], min_bridge_connections=3).bridge_nodes, [])
        with self.assertRaises(ValueError):
            self.build([600, 700], bridge_type="marriage")
        with self.assertRaises(ValueError):
            self.build([600, 700], min_bridge_connections=1)


class RecursiveNetworkTest(SampleDatabaseMixin, unittest.TestCase):
    def setUp(self):
        self.settings = Settings(db_path=self.db_path)

    def test_one_degree(self):
        result = explore_recursive_network(self.db, 1762, 1, settings=self.settings)
        self.assertEqual(len(result.nodes), 5)
        self.assertEqual(len(result.edges), 7)
        self.assertTrue(all(e.edge_label for e in result.edges))

    def test_node_depths(self):
        result = explore_recursive_network(self.db, 1762, 2, settings=self.settings)
        depths = {n.id: n.depth for n in result.nodes}
        self.assertEqual(depths[1762], 0)
        self.assertEqual(depths[100], 1)
        self.assertEqual(depths[90], 2)

    def test_unknown_person(self):
        with self.assertRaises(PersonNotFoundError):
            explore_recursive_network(self.db, 123456, 1, settings=self.settings)

    def test_truncated_result_gives_cut_off_nodes_max_depth(self):
        # the first row by order is 100 -> 90, which no longer reaches 1762
        result = explore_recursive_network(self.db, 1762, 2, max_nodes=1, settings=self.settings)
        self.assertTrue(result.truncated)
        nodes = {n.id: n for n in result.nodes}
        self.assertEqual(set(nodes), {1762, 100, 90})
        self.assertEqual(nodes[1762].depth, 0)
        self.assertEqual(nodes[100].depth, 2)
        self.assertEqual(nodes[90].depth, 2)
        self.assertLess(nodes[90].size, nodes[1762].size)

    def test_request_cannot_raise_node_limit(self):
        settings = Settings(db_path=self.db_path, max_nodes=3)
        result = explore_recursive_network(self.db, 1762, 2, max_nodes=1000, settings=settings)
        self.assertTrue(result.truncated)
        self.assertEqual(len(result.edges), 3)

    def test_office_is_rejected(self):
        with self.assertRaises(ValueError):
            explore_recursive_network(self.db, 1762, 1, ["office"], settings=self.settings)


class ConnectionPathTest(SampleDatabaseMixin, unittest.TestCase):
    def setUp(self):
        self.settings = Settings(db_path=self.db_path)

    def test_path_through_shared_relative(self):
        pathway = find_connection_path(self.db, 600, 700, 1, ["kinship"], settings=self.settings)
        self.assertEqual(pathway.path, [600, 650, 700])
        self.assertEqual(pathway.path_type, "kinship")
        self.assertTrue(all(edge.edge_label for edge in pathway.edges))

    def test_no_path(self):
        self.assertIsNone(
            find_connection_path(self.db, 400, 500, 2, ["kinship"], settings=self.settings)
        )

    def test_unknown_person(self):
        with self.assertRaises(PersonNotFoundError) as ctx:
            find_connection_path(self.db, 600, 123456, 1, ["kinship"], settings=self.settings)
        self.assertEqual(ctx.exception.person_ids, [123456])


if __name__ == "__main__":
    unittest.main()
