"""Small social graph walkthrough against a local FalkorDB server."""

from __future__ import annotations

import logging
import os

from falkorgraph import FalkorDB


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    host = os.environ.get("FALKORDB_HOST", "localhost")

    with FalkorDB(host, int(os.environ.get("FALKORDB_PORT", "6379"))) as db:
        graph = db.select_graph("social_example")

        created = graph.query(
            "CREATE (:person {name:$a})-[:knows {since:$since}]->(:person {name:$b})",
            {"a": "roi", "b": "amit", "since": 2000},
        )
        print("Nodes created:", created.statistics.nodes_created)

        result = graph.query("MATCH (a:person)-[r:knows]->(b:person) RETURN a, r, b")
        for record in result:
            print(record.get("a"), record.get("r"), record.get("b"))

        print("Plan:", graph.explain("MATCH (n:person) RETURN n"))
        graph.delete()
        print("Graphs:", db.list_graphs())


if __name__ == "__main__":
    main()
