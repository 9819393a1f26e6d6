# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""End-to-end formatting scenarios.

Each test runs the whole pipeline (read, passes, render, diagnostics) on a
small module and checks the text and diagnostics that come out.
"""

import pytest

from hsfmt.diagnostics import DiagnosticKind, mechanical
from hsfmt.formatting_rules_model import FormatConfig
from hsfmt.idempotence import tokens_preserved
from hsfmt.pipeline import check_idempotent, format_source

pytestmark = pytest.mark.integration

SAMPLE_NAMES = [
    "traffic_light", "long_exports", "unsorted_imports", "lazy_record", "formatted",
    "deriving_strategies", "unnecessary_derive", "operator_chain", "application_layout",
    "multiline_signature", "pinned_pragma", "commented_exports",
]


def _format(text, **kwargs):
    result = format_source(text, **kwargs)
    return result.unwrap()


class TestScenarios:
    """Formatting scenarios over whole modules."""

    def test_short_sum_type_unchanged(self, sample_sources):
        """Test a short parenthesized deriving line is left alone.

        Given: A one-line sum type under the line budget
        When: It is formatted
        Then: The text is identical and nothing was fixed
        """
        text = sample_sources["traffic_light"]
        result = _format(text)
        assert result.text == text
        assert mechanical(result.diagnostics) == ()

    def test_long_export_list_broken(self, sample_sources):
        """Test an export list over budget goes comma-leading, one per line.

        Given: A module header longer than 80 columns
        When: It is formatted
        Then: The exports are listed one per line starting with '( '
        """
        result = _format(sample_sources["long_exports"])
        assert result.text.startswith(
            "module Data.Inventory.Warehouse.Reporting\n"
            "  ( summarizeStock\n"
            "  , reorderThreshold\n"
            "  , formatReport\n"
            "  ) where\n"
        )
        assert result.changed
        assert tokens_preserved(sample_sources["long_exports"], result.text)

    def test_imports_sorted_within_group(self, sample_sources):
        """Test two external imports are sorted with no blank line between.

        Given: import Data.Text before import Control.Exception
        When: The module is formatted
        Then: Control.Exception comes first, directly followed by Data.Text
        """
        result = _format(sample_sources["unsorted_imports"])
        assert "import Control.Exception\nimport Data.Text\n" in result.text
        assert DiagnosticKind.IMPORT_ORDER in [d.kind for d in result.diagnostics]

    def test_lazy_field_flagged_not_rewritten(self, sample_sources):
        """Test a lazy record field is reported at its span and left as is.

        Given: A record field without a bang
        When: The module is formatted
        Then: The text is unchanged and one MissingStrictnessAnnotation
              covers exactly the field
        """
        text = sample_sources["lazy_record"]
        result = _format(text)
        assert result.text == text
        found = [d for d in result.diagnostics if d.kind is DiagnosticKind.MISSING_STRICTNESS_ANNOTATION]
        assert len(found) == 1
        assert text[found[0].span.start:found[0].span.end] == "fooBar :: Bar"
        assert found[0].message == "Record field 'fooBar' has no strictness annotation"

    def test_second_run_is_identical(self, sample_sources):
        """Test formatting the formatted output changes nothing.

        Given: The output of the long export list scenario
        When: It is formatted again
        Then: The text is identical and no mechanical fix is reported
        """
        first = _format(sample_sources["long_exports"])
        second = _format(first.text)
        assert second.text == first.text
        assert mechanical(second.diagnostics) == ()

    @pytest.mark.parametrize("name", SAMPLE_NAMES)
    def test_self_check_on_every_sample(self, sample_sources, name):
        """Test the self-check passes for each sample."""
        text = sample_sources[name]
        assert _format(text, self_check=True).text == _format(text).text

    def test_local_prefix_grouping(self):
        """Test configured local prefixes produce a separate import group."""
        text = (
            "import Acme.Types (Order)\n"
            "import Data.List (sortOn)\n"
            "\n"
            "total :: Int\n"
            "total = 0\n"
        )
        result = _format(text, config=FormatConfig(local_module_prefixes=("Acme",)))
        assert result.text.startswith("import Data.List (sortOn)\n\nimport Acme.Types (Order)\n")

    def test_deriving_strategies_one_clause_per_line(self, sample_sources):
        """Test deriving clauses get one line each with aligned class lists.

        Given: Three strategy clauses on one line, one without parentheses
        When: The module is formatted
        Then: Each clause has its own line, the lists line up and every
              list is parenthesized
        """
        result = _format(sample_sources["deriving_strategies"])
        assert result.text.endswith(
            "newtype Meters = Meters Double\n"
            "  deriving stock    (Eq, Ord)\n"
            "  deriving newtype  (Num)\n"
            "  deriving anyclass (NFData)\n"
        )
        assert DiagnosticKind.DERIVING_FORMAT in [d.kind for d in result.diagnostics]

    def test_deriving_strategies_stable_on_second_run(self):
        """Test formatted deriving strategies report no fix on a second run.

        Given: A record with stock, anyclass and newtype clauses
        When: The output of one run is formatted again
        Then: The text is identical and no mechanical fix is reported
        """
        text = (
            "data T = A { x :: !Int } | B\n"
            "  deriving stock (Eq) deriving anyclass (NFData) deriving newtype Show\n"
        )
        first = _format(text)
        assert first.text == (
            "data T = A { x :: !Int } | B\n"
            "  deriving stock    (Eq)\n"
            "  deriving anyclass (NFData)\n"
            "  deriving newtype  (Show)\n"
        )
        assert DiagnosticKind.DERIVING_FORMAT in [d.kind for d in first.diagnostics]
        second = _format(first.text)
        assert second.text == first.text
        assert mechanical(second.diagnostics) == ()
        assert check_idempotent(text)

    def test_duplicate_derive_flagged(self, sample_sources):
        """Test a class derived twice is reported at its second occurrence.

        Given: deriving (Eq, Show, Eq)
        When: The module is formatted
        Then: The text is unchanged and the diagnostic covers the second Eq
        """
        text = sample_sources["unnecessary_derive"]
        result = _format(text)
        assert result.text == text
        found = [d for d in result.diagnostics if d.kind is DiagnosticKind.UNNECESSARY_DERIVE]
        assert len(found) == 1
        assert found[0].span.start == text.rindex("Eq")
        assert text[found[0].span.start:found[0].span.end] == "Eq"
        assert found[0].message == "'Eq' is already derived for this type"

    def test_long_operator_chain_aligned(self, sample_sources):
        """Test an applicative chain over budget breaks before each operator.

        Given: A parser chain of 87 columns
        When: It is formatted
        Then: Every <*> starts a line under the first <$>
        """
        result = _format(sample_sources["operator_chain"])
        assert result.text.endswith(
            "parseUser = User <$> field \"name\"\n"
            "                 <*> field \"email\"\n"
            "                 <*> field \"age\"\n"
            "                 <*> field \"address\"\n"
        )
        assert tokens_preserved(sample_sources["operator_chain"], result.text)

    def test_long_application_one_argument_per_line(self, sample_sources):
        """Test a long application puts each argument on its own line."""
        result = _format(sample_sources["application_layout"])
        assert result.text.endswith(
            "renderPage = layoutWith\n"
            "  defaultOptions\n"
            "  pageHeader\n"
            "  pageNavigation\n"
            "  pageContent\n"
            "  pageFooter\n"
        )

    def test_long_signature_broken_at_arrows(self, sample_sources):
        """Test a long signature gets one line per context and argument.

        Given: A constrained signature of more than 80 columns
        When: It is formatted
        Then: '::', '=>' and each '->' lead their own lines
        """
        result = _format(sample_sources["multiline_signature"])
        assert result.text == (
            "processOrder\n"
            "  :: (MonadIO m, MonadLogger m)\n"
            "  => Config\n"
            "  -> OrderId\n"
            "  -> Customer\n"
            "  -> Inventory\n"
            "  -> m (Either OrderError Receipt)\n"
            "processOrder = placeOrder\n"
        )

    def test_inline_pragma_moved_to_binder(self, sample_sources):
        """Test an INLINE pragma moves directly after the binder it names.

        Given: {-# INLINE square #-} above an unrelated declaration
        When: The module is formatted
        Then: The pragma follows the last clause of square with no blank line
        """
        result = _format(sample_sources["pinned_pragma"])
        assert "square n = n * n\n{-# INLINE square #-}" in result.text
        assert "#-}\n\ncube" not in result.text
        assert result.text.startswith("module Geometry (cube) where\n\ncube :: Int -> Int\n")
        assert DiagnosticKind.PRAGMA_PLACEMENT in [d.kind for d in result.diagnostics]

    def test_commented_export_list_stable(self, sample_sources):
        """Test an export list with a section heading and an item comment.

        Given: A long header whose exports carry comments, one after a comma
        When: It is formatted twice
        Then: The comment after the comma ends the line of 'foo' and the
              second run reports nothing mechanical
        """
        first = _format(sample_sources["commented_exports"])
        assert first.text == (
            "module Some.Very.Long.Module.Name.That.Is.Long\n"
            "  (\n"
            "    -- * Section\n"
            "    foo  -- the foo\n"
            "  , bar\n"
            "  , baz\n"
            "  , quux\n"
            "  , frobnicate\n"
            "  , another\n"
            "  ) where\n"
        )
        second = _format(first.text)
        assert second.text == first.text
        assert mechanical(second.diagnostics) == ()
        assert check_idempotent(sample_sources["commented_exports"])

    def test_comment_after_import_comma_kept_on_item_line(self):
        """Test a comment after a comma in an import list stays with its item."""
        text = (
            "import Data.List (sortOn, -- sorting\n"
            "                  nub)\n"
            "\n"
            "x :: Int\n"
            "x = 1\n"
        )
        result = _format(text)
        assert result.text.startswith(
            "import Data.List\n"
            "  ( sortOn  -- sorting\n"
            "  , nub\n"
            "  )\n"
        )
        assert tokens_preserved(text, result.text)
        assert check_idempotent(text)
