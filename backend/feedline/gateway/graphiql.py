"""In-browser GraphiQL console served on GET /graphql."""

GRAPHIQL_VERSION = "3.0.10"
REACT_VERSION = "18.2.0"

_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Feedline GraphiQL</title>
    <style>
      body {{ height: 100%; margin: 0; width: 100%; overflow: hidden; }}
      #graphiql {{ height: 100vh; }}
    </style>
    <link rel="stylesheet" href="https://unpkg.com/graphiql@{graphiql}/graphiql.min.css" />
    <script crossorigin src="https://unpkg.com/react@{react}/umd/react.production.min.js"></script>
    <script crossorigin src="https://unpkg.com/react-dom@{react}/umd/react-dom.production.min.js"></script>
    <script crossorigin src="https://unpkg.com/graphiql@{graphiql}/graphiql.min.js"></script>
  </head>
  <body>
    <div id="graphiql">Loading...</div>
    <script>
      const fetcher = GraphiQL.createFetcher({{ url: {endpoint} }});
      ReactDOM.createRoot(document.getElementById("graphiql")).render(
        React.createElement(GraphiQL, {{ fetcher: fetcher }})
      );
    </script>
  </body>
</html>
"""


def render_graphiql(endpoint: str = "/graphql") -> str:
    # endpoint is embedded as a JS string literal
    escaped = endpoint.replace("\\", "\\\\").replace('"', '\\"').replace("<", "\\u003c")
    return _TEMPLATE.format(
        graphiql=GRAPHIQL_VERSION, react=REACT_VERSION, endpoint=f'"{escaped}"'
    )


def accepts_html(accept_header: str) -> bool:
    return "text/html" in (accept_header or "").lower()
