import unittest

from form_builder.builder.conditions import dangling_references, is_visible, visible_fields
from form_builder.builder.document import Column, ConditionalRule, Field, FormDocument, Row
from form_builder.builder.tree import insert_field, remove_field


class ConditionalVisibilityTests(unittest.TestCase):
    def setUp(self):
        self.watched = Field(id="fb", name="B", label="B", type="radio", options=("Yes", "No"))
        self.dependent = Field(
            id="fa",
            name="A",
            label="A",
            conditional=ConditionalRule(watched_field_name="B", required_value="No"),
        )
        self.document = FormDocument(
            name="Visibility",
            rows=(Row(id="r", columns=(Column(id="c", width="100%", fields=(self.watched, self.dependent)),)),),
        )

    def test_field_without_rule_is_visible(self):
        self.assertTrue(is_visible(self.watched, {}))

    def test_matching_value_shows_field(self):
        self.assertTrue(is_visible(self.dependent, {"B": "No"}))
        self.assertFalse(is_visible(self.dependent, {"B": "Yes"}))

    def test_comparison_is_strict(self):
        self.assertFalse(is_visible(self.dependent, {"B": "no"}))
        self.assertFalse(is_visible(self.dependent, {"B": " No"}))
        self.assertFalse(is_visible(self.dependent, {"B": ["No"]}))
        self.assertFalse(is_visible(self.dependent, {"B": None}))

    def test_removed_watched_field_leaves_dangling_rule(self):
        result = remove_field(self.document, "fb")
        remaining = result.document.rows[0].columns[0].fields
        self.assertEqual(remaining[0].conditional, ConditionalRule("B", "No"))
        self.assertFalse(is_visible(remaining[0], {}))
        refs = dangling_references(result.document)
        self.assertEqual(len(refs), 1)
        self.assertEqual(refs[0].field_name, "A")
        self.assertEqual(refs[0].watched_field_name, "B")

    def test_no_dangling_references_when_watched_field_exists(self):
        self.assertEqual(dangling_references(self.document), [])

    def test_visible_fields_on_serialized_schema(self):
        schema = {
            "schema": [
                {
                    "columns": [
                        {
                            "fields": [
                                {"name": "B", "type": "radio"},
                                {"name": "A", "conditional": {"field": "B", "value": "No"}},
                                {"name": "C", "conditional": None},
                            ]
                        }
                    ]
                }
            ]
        }
        names = [field["name"] for field in visible_fields(schema, {"B": "Yes"})]
        self.assertEqual(names, ["B", "C"])
        names = [field["name"] for field in visible_fields(schema, {"B": "No"})]
        self.assertEqual(names, ["B", "A", "C"])

    def test_rule_may_watch_a_later_field(self):
        late = Field(id="fl", name="late", label="Late")
        early = Field(id="fe", name="early", label="Early", conditional=ConditionalRule("late", "go"))
        doc = FormDocument(rows=(Row(id="r", columns=(Column(id="c", width="100%", fields=(early,)),)),))
        doc = insert_field(doc, "c", None, late).document
        self.assertEqual(dangling_references(doc), [])
        self.assertTrue(is_visible(early, {"late": "go"}))
