"""
Tests for the node store and refresh reconciliation.

Refresh must keep the node objects of payloads that are still present,
create nodes only for new payloads and evict the rest, and never leave the
store half-updated when the generator fails.
"""

import asyncio

import pytest

from dazzletreeview import (
    DuplicateNodeIdError,
    IdGenerator,
    NodeNotFoundError,
    NotABranchError,
    Tree,
    TreeError,
    TreeNode,
    TreeNodeGenerator,
    TreeNotInitializedError,
)
from dazzletreeview.testing import MappingNodeGenerator, TreeTestHelper


def make_generator():
    return MappingNodeGenerator({
        'root': ['a', 'b'],
        'a': ['a1', 'a2'],
        'b': ['b1'],
    })


class BareGenerator(TreeNodeGenerator):
    """Generator that relies on every default of the base class."""

    async def fetch_children(self, node):
        return []

    def create_node(self, parent, data, tree):
        return TreeNode(data, parent.depth + 1, str(data), tree.generate_id())


class TestRootAndLookup:
    """Test root creation and id lookups."""

    def test_default_root(self):
        tree = Tree.create_tree(BareGenerator())
        root = tree.root_node

        assert root.id == Tree.ROOT_NODE_ID == 0
        assert root.name == "Root"
        assert root.depth == 0
        assert root.data is None
        assert root.is_child and root.expand
        assert len(tree) == 1

    def test_root_id_is_forced(self):
        class StubbornRoot(BareGenerator):
            def create_root_node(self):
                return TreeNode("top", -1, "top", id=42, expand=False)

        tree = Tree.create_tree(StubbornRoot())
        assert tree.root_node.id == 0
        assert tree.root_node.expand is True
        assert tree.get_node(0) is tree.root_node
        assert not tree.has_node(42)

    def test_uninitialised_tree(self):
        tree = Tree(make_generator())
        with pytest.raises(TreeNotInitializedError):
            tree.root_node

    @pytest.mark.asyncio
    async def test_refresh_without_generator(self):
        tree = Tree()
        tree.init_tree()
        with pytest.raises(TreeNotInitializedError):
            await tree.refresh(tree.root_node)

    def test_get_node_missing(self):
        tree = Tree.create_tree(make_generator())
        with pytest.raises(NodeNotFoundError) as exc_info:
            tree.get_node(99)
        assert exc_info.value.node_id == 99
        assert "99" in str(exc_info.value)
        # Lookups behave like a mapping for generic callers
        assert isinstance(exc_info.value, KeyError)

    @pytest.mark.asyncio
    async def test_get_children_by_id(self):
        tree = Tree.create_tree(make_generator())
        children = await tree.get_children(0)
        assert [child.name for child in children] == ['a', 'b']
        assert tree.get_nodes([child.id for child in children]) == children

    @pytest.mark.asyncio
    async def test_shared_id_space(self):
        ids = IdGenerator()
        first = Tree.create_tree(make_generator(), ids)
        second = Tree.create_tree(make_generator(), ids)

        first_ids = {node.id for node in await first.refresh(first.root_node)}
        second_ids = {node.id for node in await second.refresh(second.root_node)}
        assert first_ids.isdisjoint(second_ids)

    @pytest.mark.asyncio
    async def test_contains(self):
        tree = Tree.create_tree(make_generator())
        a, _ = await tree.refresh(tree.root_node)

        assert a in tree
        assert a.id in tree
        # An equal snapshot is not the live node
        assert a.copy() not in tree


class TestRefresh:
    """Test reconciliation of a branch against freshly fetched payloads."""

    @pytest.mark.asyncio
    async def test_first_refresh_creates_children(self):
        generator = make_generator()
        tree = Tree.create_tree(generator)

        children = await tree.refresh(tree.root_node)

        assert [child.name for child in children] == ['a', 'b']
        assert [child.id for child in children] == [1, 2]
        assert all(child.depth == 0 for child in children)
        assert [child.path for child in children] == ['0/1', '0/2']
        assert tree.root_node.has_child
        assert generator.fetch_log == ['root']
        assert TreeTestHelper(tree).check_invariants() == []

    @pytest.mark.asyncio
    async def test_refresh_is_idempotent(self):
        tree = Tree.create_tree(make_generator())
        first = await tree.refresh(tree.root_node)
        last_id = tree.id_generator.last_id

        second = await tree.refresh(tree.root_node)

        assert len(second) == len(first)
        assert all(a is b for a, b in zip(first, second))
        assert tree.id_generator.last_id == last_id
        assert len(tree) == 3

    @pytest.mark.asyncio
    async def test_retained_children_keep_state(self):
        generator = make_generator()
        tree = Tree.create_tree(generator)
        a, b = await tree.refresh(tree.root_node)
        a.expand = True
        a.selected = True

        generator.set_children('root', ['b', 'c', 'a'])
        children = await tree.refresh(tree.root_node)

        assert children[0] is a
        assert children[1] is b
        assert a.expand and a.selected
        c = children[2]
        assert c.name == 'c'
        assert c.id == 3

    @pytest.mark.asyncio
    async def test_new_children_follow_fetch_order(self):
        generator = MappingNodeGenerator({'root': ['z', 'y', 'x']})
        tree = Tree.create_tree(generator)

        children = await tree.refresh(tree.root_node)

        assert [child.name for child in children] == ['z', 'y', 'x']

    @pytest.mark.asyncio
    async def test_duplicate_payloads_collapse(self):
        generator = MappingNodeGenerator({'root': ['a', 'a', 'b']})
        tree = Tree.create_tree(generator)

        children = await tree.refresh(tree.root_node)

        assert [child.name for child in children] == ['a', 'b']

    @pytest.mark.asyncio
    async def test_vanished_children_are_evicted_with_subtree(self):
        generator = make_generator()
        tree = Tree.create_tree(generator)
        a, b = await tree.refresh(tree.root_node)
        a1, a2 = await tree.refresh(a)

        generator.set_children('root', ['b'])
        children = await tree.refresh(tree.root_node)

        assert children == [b]
        for gone in (a, a1, a2):
            assert not tree.has_node(gone.id)
        assert len(tree) == 2
        assert TreeTestHelper(tree).check_invariants() == []

    @pytest.mark.asyncio
    async def test_emptied_branch_clears_has_child(self):
        generator = make_generator()
        tree = Tree.create_tree(generator)
        _, b = await tree.refresh(tree.root_node)
        await tree.refresh(b)
        assert b.has_child

        generator.set_children('b', [])
        assert await tree.refresh(b) == []

        assert not b.has_child
        assert tree.get_cached_children(b) == []
        assert TreeTestHelper(tree).check_invariants() == []

    @pytest.mark.asyncio
    async def test_refresh_leaf_raises(self):
        tree = Tree.create_tree(make_generator())
        a, _ = await tree.refresh(tree.root_node)
        a1, _ = await tree.refresh(a)

        with pytest.raises(NotABranchError):
            await tree.refresh(a1)

    @pytest.mark.asyncio
    async def test_failed_fetch_leaves_store_untouched(self):
        generator = make_generator()
        tree = Tree.create_tree(generator)
        before = await tree.refresh(tree.root_node)

        generator.set_children('root', ['c'])
        generator.fail_next_fetch('root')
        with pytest.raises(OSError):
            await tree.refresh(tree.root_node)

        assert tree.get_cached_children(tree.root_node) == before
        assert len(tree) == 3

        generator.recover('root')
        after = await tree.refresh(tree.root_node)
        assert [child.name for child in after] == ['c']

    @pytest.mark.asyncio
    async def test_failed_create_leaves_store_untouched(self):
        class Exploding(MappingNodeGenerator):
            def create_node(self, parent, data, tree):
                if data == 'bad':
                    raise ValueError("cannot build node")
                return super().create_node(parent, data, tree)

        generator = Exploding({'root': ['a', 'b']})
        tree = Tree.create_tree(generator)
        before = await tree.refresh(tree.root_node)

        generator.set_children('root', ['new', 'bad'])
        with pytest.raises(ValueError):
            await tree.refresh(tree.root_node)

        # Neither the eviction of a/b nor the creation of 'new' happened
        assert tree.get_cached_children(tree.root_node) == before
        assert len(tree) == 3

    @pytest.mark.asyncio
    async def test_duplicate_node_id_rejected(self):
        class Reusing(MappingNodeGenerator):
            def create_node(self, parent, data, tree):
                node = super().create_node(parent, data, tree)
                node.id = 1
                return node

        tree = Tree.create_tree(Reusing({'root': ['a', 'b']}))

        with pytest.raises(DuplicateNodeIdError) as exc_info:
            await tree.refresh(tree.root_node)
        assert exc_info.value.node_id == 1
        assert len(tree) == 1

    @pytest.mark.asyncio
    async def test_unavailable_children_keep_cache(self):
        class Offline(MappingNodeGenerator):
            offline = False

            async def fetch_children(self, node):
                if self.offline:
                    return None
                return await super().fetch_children(node)

        generator = Offline({'root': ['a', 'b'], 'a': ['a1']})
        tree = Tree.create_tree(generator)
        await tree.refresh_with_child(tree.root_node)
        a, b = tree.get_cached_children(tree.root_node)
        a.selected = True

        generator.offline = True
        children = await tree.refresh(tree.root_node)

        assert children == [a, b]
        assert children[0] is a and a.selected
        assert len(tree) == 4
        assert TreeTestHelper(tree).check_invariants() == []

    @pytest.mark.asyncio
    async def test_node_evicted_during_its_fetch(self):
        class SlowBranch(MappingNodeGenerator):
            async def fetch_children(self, node):
                if node.data == 'a':
                    await asyncio.sleep(0.05)
                return await super().fetch_children(node)

        generator = SlowBranch({'root': ['a', 'b'], 'a': ['a1', 'a2']})
        tree = Tree.create_tree(generator)
        a, _ = await tree.refresh(tree.root_node)

        generator.set_children('root', ['b'])
        orphaned, _ = await asyncio.gather(tree.refresh(a), tree.refresh(tree.root_node))

        # The root refresh evicted a first; a's late result is discarded
        assert orphaned == []
        assert len(tree) == 2
        assert not tree.has_node(a.id)
        assert TreeTestHelper(tree).check_invariants() == []

    @pytest.mark.asyncio
    async def test_stats_count_fetches(self):
        tree = Tree.create_tree(make_generator())
        await tree.refresh(tree.root_node)
        await tree.refresh(tree.root_node)

        stats = tree.get_stats()
        assert stats['fetches'] == 2
        assert stats['nodes'] == 3
        assert stats['cached_parents'] == 1
        assert stats['last_id'] == 2


class TestRefreshWithChild:
    """Test eager, breadth-first warming of a subtree."""

    @pytest.mark.asyncio
    async def test_warms_every_branch(self):
        generator = make_generator()
        tree = Tree.create_tree(generator)

        await tree.refresh_with_child(tree.root_node)

        assert generator.fetch_log == ['root', 'a', 'b']
        assert len(tree) == 6
        assert TreeTestHelper(tree).check_invariants() == []

    @pytest.mark.asyncio
    async def test_stops_at_collapsed_branches(self):
        generator = make_generator()
        tree = Tree.create_tree(generator)
        a, b = await tree.refresh(tree.root_node)
        a.expand = True

        await tree.refresh_with_child(tree.root_node, with_expandable=True)

        assert generator.fetch_log == ['root', 'root', 'a']
        assert tree.get_cached_children(b) == []

    @pytest.mark.asyncio
    async def test_leaves_are_not_fetched(self):
        generator = MappingNodeGenerator({'root': ['leaf']})
        tree = Tree.create_tree(generator)

        await tree.refresh_with_child(tree.root_node)

        assert generator.fetch_log == ['root']


class TestRemoveNode:
    """Test explicit removal from the store."""

    @pytest.mark.asyncio
    async def test_remove_subtree(self):
        tree = Tree.create_tree(make_generator())
        await tree.refresh_with_child(tree.root_node)
        a = tree.get_node(1)

        tree.remove_node(a)

        assert [child.name for child in tree.get_cached_children(tree.root_node)] == ['b']
        assert len(tree) == 3
        assert TreeTestHelper(tree).check_invariants() == []

    @pytest.mark.asyncio
    async def test_removing_last_child_clears_has_child(self):
        tree = Tree.create_tree(MappingNodeGenerator({'root': ['only']}))
        (only,) = await tree.refresh(tree.root_node)

        tree.remove_node(only.id)

        assert not tree.root_node.has_child

    def test_root_cannot_be_removed(self):
        tree = Tree.create_tree(make_generator())
        with pytest.raises(TreeError):
            tree.remove_node(tree.root_node)
