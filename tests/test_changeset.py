from protojam import changeset, models, publisher


class TestCountChanges:
    def test_counts_prefixed_lines(self):
        assert changeset.count_changes("+a\n+b\n-c\n d") == (2, 1)

    def test_unprefixed_content_counts_zero(self):
        assert changeset.count_changes("export default function Demo(){return null}") == (0, 0)

    def test_trailing_newline_invariant(self):
        content = "+a\n-b\n+c"
        assert changeset.count_changes(content) == changeset.count_changes(content + "\n")

    def test_only_first_character_matters(self):
        assert changeset.count_changes(" +a\n\t-b\na+b") == (0, 0)

    def test_empty(self):
        assert changeset.count_changes("") == (0, 0)


class TestMaterialize:
    def test_idempotent(self):
        change = models.FileChange(path="a.ts", content="+x\n-y\n+z")
        once = changeset.materialize(change)
        twice = changeset.materialize(once)
        assert (once.additions, once.deletions) == (2, 1)
        assert twice == once

    def test_overrides_supplied_counts(self):
        change = models.FileChange(path="a.ts", content="+x", additions=40, deletions=9)
        result = changeset.materialize(change)
        assert (result.additions, result.deletions) == (1, 0)


class TestFromPlanned:
    def test_keeps_content(self):
        planned = models.PlannedFile(path="a.ts", content="+x", originalPath="proto/a.js")
        change = changeset.from_planned(planned)
        assert change.content == "+x"
        assert change.original_path == "proto/a.js"
        assert change.additions == 1

    def test_content_from_changes(self):
        planned = models.PlannedFile(path="a.ts", changes=["+one", "-two", "three"])
        change = changeset.from_planned(planned)
        assert change.content == "+one\n-two\nthree"
        assert (change.additions, change.deletions) == (1, 1)


class TestPlanDocument:
    def test_content_and_counts(self):
        doc = changeset.plan_document("Add demo", "Line one\nLine two")
        assert doc.path == "integration_plan.md"
        assert doc.content == "# Add demo\n\nLine one\nLine two"
        assert doc.additions == 4
        assert doc.deletions == 0

    def test_empty_content_falls_back_to_changes(self):
        planned = models.PlannedFile(path="a.ts", content="", changes=["+x = 1"])
        change = changeset.from_planned(planned)
        assert change.content == "+x = 1"
        assert change.additions == 1
        assert publisher.tree_entries([change])[0]["content"] == "+x = 1"
