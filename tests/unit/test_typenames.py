"""
Unit tests for type name helpers.
"""

from cms.docsync.typenames import get_type_name, make_type_name


class TestTypeNames:
    """Tests for get_type_name and make_type_name."""

    def test_camel_case_tag(self):
        assert get_type_name("blogPost") == "BlogPost"

    def test_dotted_tag(self):
        assert get_type_name("sanity.imageAsset") == "SanityImageAsset"

    def test_snake_and_kebab_tags(self):
        assert get_type_name("blog_post") == "BlogPost"
        assert get_type_name("blog-post") == "BlogPost"

    def test_acronyms_kept(self):
        assert get_type_name("SEOSettings") == "SEOSettings"

    def test_digits(self):
        assert get_type_name("post2") == "Post2"

    def test_make_type_name_prefixes(self):
        assert make_type_name("Sanity", "post") == "SanityPost"

    def test_make_type_name_collapses_doubled_prefix(self):
        assert make_type_name("Sanity", "sanity.imageAsset") == "SanityImageAsset"

    def test_make_type_name_without_prefix(self):
        assert make_type_name("", "author") == "Author"
