from __future__ import annotations

from volunteer_roster.database.bootstrap import iter_sql_statements


def test_splits_on_semicolons_outside_quotes():
    sql = """
    -- departamentos de exemplo; não executar em produção
    INSERT INTO departments (name, description) VALUES ('Louvor', 'Banda; coral');
    INSERT INTO departments (name) VALUES ("Kids");
    UPDATE departments SET description='it''s fine' WHERE name='Kids'
    """

    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO departments (name, description) VALUES ('Louvor', 'Banda; coral')",
        'INSERT INTO departments (name) VALUES ("Kids")',
        "UPDATE departments SET description='it''s fine' WHERE name='Kids'",
    ]


def test_comment_only_chunks_are_dropped():
    assert list(iter_sql_statements("-- nada aqui;\n;\n  ")) == []


def test_dash_inside_expression_is_kept():
    assert list(iter_sql_statements("SELECT 3-1;")) == ["SELECT 3-1"]
