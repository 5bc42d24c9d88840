"""
Unit tests for the query assembly accumulator.
"""

from app.reports.assembly import QueryAssemblyContext


class TestQueryAssemblyContext:
    """Join and CTE de-duplication and final rendering"""

    def test_join_registered_once(self):
        ctx = QueryAssemblyContext()
        ctx.add_from("table AS t")
        assert ctx.add_join_once("lcat", "LEFT JOIN learning_category AS lcat ON x = y") is True
        assert ctx.add_join_once("lcat", "LEFT JOIN learning_category AS lcat ON x = y") is False
        assert ctx.joins == ["table AS t", "LEFT JOIN learning_category AS lcat ON x = y"]
        assert ctx.has_join("lcat")

    def test_cte_registered_once(self):
        ctx = QueryAssemblyContext()
        assert ctx.add_cte("w", "SELECT 1") is True
        assert ctx.add_cte("w", "SELECT 2") is False
        assert ctx.ctes == [("w", "SELECT 1")]

    def test_blank_predicates_are_ignored(self):
        ctx = QueryAssemblyContext()
        ctx.add_where("")
        ctx.add_where("   ")
        ctx.add_where(" AND a = 1")
        ctx.add_select("x", '"X"')
        ctx.add_from("t")
        assert ctx.render().endswith("WHERE TRUE AND a = 1")

    def test_group_by_keys_are_unique(self):
        ctx = QueryAssemblyContext()
        ctx.add_group_by("lc.idCourse")
        ctx.add_group_by("lc.idCourse")
        assert ctx.group_by == ["lc.idCourse"]

    def test_alias_tracked_per_field(self):
        ctx = QueryAssemblyContext()
        ctx.add_select("lc.name", '"Course Name"', "course_name")
        assert ctx.alias_for("course_name") == '"Course Name"'
        assert ctx.alias_for("course_code") is None

    def test_render_full_statement(self):
        ctx = QueryAssemblyContext()
        ctx.add_cte("w", "SELECT 1 AS one")
        ctx.add_select("ARBITRARY(lc.name)", '"Course Name"')
        ctx.add_from("(SELECT * FROM learning_course WHERE TRUE) AS lc")
        ctx.add_from("JOIN w ON TRUE")
        ctx.add_where("AND lc.idCourse > 0")
        ctx.add_group_by("lc.idCourse")

        sql = ctx.render("\nORDER BY LOWER(\"Course Name\") ASC", " LIMIT 10")

        assert sql == (
            "WITH w AS (SELECT 1 AS one)\n"
            "SELECT ARBITRARY(lc.name) AS \"Course Name\"\n"
            "FROM (SELECT * FROM learning_course WHERE TRUE) AS lc JOIN w ON TRUE\n"
            "WHERE TRUE AND lc.idCourse > 0\n"
            "GROUP BY lc.idCourse\n"
            "ORDER BY LOWER(\"Course Name\") ASC LIMIT 10"
        )
