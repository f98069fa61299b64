def seed(conn):
    # the admin operator (id=1) is the default user_id stamped on documents
    row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
    if row and row["n"] == 0:
        conn.execute("""
            INSERT INTO users(id, username, full_name, role, is_active)
            VALUES (1, 'admin', 'Administrator', 'admin', 1)
        """)
