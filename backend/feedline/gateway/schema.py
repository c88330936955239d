"""
Default schema and root resolvers.

The business schema is supplied by the application through
create_app(schema=..., root_value=...). This small schema lets the service
run on its own and shows the conventions resolvers follow: root resolvers
take `(info, **args)`, read the request through `info.context`, and guard
themselves with `@requires_auth` when anonymous callers are not allowed.
"""

from urllib.parse import quote

from graphql import build_schema

from feedline.exceptions import ValidationError
from feedline.gateway.context import requires_auth

SCHEMA_SDL = """
type Query {
  "Liveness of the GraphQL layer; public."
  status: String!
  "The authenticated caller."
  viewer: Viewer!
}

type Mutation {
  "Report the image uploaded with this request as a media reference."
  attachImage(caption: String): Image!
}

type Viewer {
  userId: ID!
  claims: [Claim!]!
}

type Claim {
  name: String!
  value: String!
}

type Image {
  url: String!
  storedName: String!
  mimeType: String!
  sizeBytes: Int!
  caption: String
}
"""

schema = build_schema(SCHEMA_SDL)


def resolve_status(info):
    return "ok"


@requires_auth
def resolve_viewer(info):
    identity = info.context.identity
    return {
        "userId": identity.user_id,
        "claims": [
            {"name": name, "value": value}
            for name, value in sorted(identity.claims.items())
        ],
    }


@requires_auth
def resolve_attach_image(info, caption=None):
    upload = info.context.upload
    if upload is None or not upload.accepted:
        raise ValidationError("A PNG or JPEG image is required.", field="image")
    return {
        "url": f"/images/{quote(upload.stored_name)}",
        "storedName": upload.stored_name,
        "mimeType": upload.mime_type,
        "sizeBytes": upload.size_bytes,
        "caption": caption,
    }


root_value = {
    "status": resolve_status,
    "viewer": resolve_viewer,
    "attachImage": resolve_attach_image,
}
