# chatgate

The backend pieces of a small chat service:

- **`chatgate.gateway`** is an HTTP API gateway. It takes the public routes
  (`/login`, `/signIn`, `/idCheck`, `/statCheck/<login_id>`,
  `/getName/<login_id>`, `/showId/<login_id>`, `/chat/room`, `/chat/enter`,
  `/chat/messages`, `/chat/admin/...`) and forwards each one to the backend
  service that owns it. It answers CORS preflight `OPTIONS` requests with 204
  and puts `Access-Control-Allow-Origin: *` on every forwarded reply.
- **`chatgate.admin`** holds `AdminStore`, which runs the admin queries on the
  `User` and `Message` tables. It lists users, marks users deleted, grants
  admin status, deletes messages and fetches a user's profile. Each operation
  also has a `handle_*` method that takes a JSON request body and returns a
  `HandlerResult` (status, body, content type).
- **`chatgate.chat_room`** holds `ChatRoom`, which publishes chat messages and
  participant lists to a pub/sub channel, and can turn a message stream into
  Server-Sent Events. `redis_messages` yields the messages of a Redis channel.
- **`chatgate.jwt_algorithm`** has JWT signing and verification for the
  HS256/384/512, RS256/384/512 and ES256/384/512 algorithms.

## Install

```
pip install .
```

Run `pip install .[test]` if you also want the test tools.

## Running the gateway

```
chatgate
```

By default the gateway listens on `0.0.0.0:8080`; `--host` and `--port`
change that. It forwards to these backends, all on `localhost`:

- the login service on port 8880
- the chat service on port 8881
- the admin service on port 8882

You can also use the gateway from your own code and supply your own
forwarder, a callable `(method, url, body, content_type)` returning a
`BackendReply`:

```python
from chatgate.gateway import Gateway, BackendReply

def forwarder(method, url, body, content_type):
    return BackendReply(status=200, body=b'{"ok": true}', content_type="application/json")

gateway = Gateway(forwarder)
response = gateway.handle("POST", "/login", b'{"login_id": "alice"}')
print(response.status, response.body)
```

If a backend cannot be reached, the forwarder raises `BackendUnavailable` and
the gateway answers with status 500. Unknown routes get 404.

## Admin store

```python
from chatgate.admin import AdminStore, connect_mysql

password = "password"
conn = connect_mysql("127.0.0.1:3306", "root", password, "chat")
store = AdminStore(conn, "%s")
print(store.all_users())
result = store.handle_user_select('{"login_id": "alice"}')
print(result.status, result.body)
```

`AdminStore` works with any DB-API connection. Pass the placeholder style
your driver uses: `"?"` for `sqlite3`, `"%s"` for PyMySQL.

## Chat room

`ChatRoom` takes any object with a `publish(channel, message)` method, and
`redis_messages` any client with a `pubsub()` method, such as a client from
the `redis` distribution (not installed with this package):

```python
import redis
from chatgate.chat_room import ChatRoom, redis_messages

client = redis.Redis()
room = ChatRoom(client, "chat_room:1")
room.join('{"user_id": 1, "user_name": "alice"}')
room.talk('{"user_id": 1, "user_status": 1, "msg_text": "hi", "user_name": "alice"}')
for event in room.event_stream(redis_messages(client, "chat_room:1")):
    print(event, end="")
```

Messages from a user whose `user_status` is 3 are accepted but not published.

## JWT algorithms

`sign` returns the raw signature; `verify` takes it base64url-encoded, as it
appears in a token:

```python
from chatgate.jwt_algorithm import Algorithm, base64url_encode, sign, verify

signature = sign(Algorithm.HS256, b"secret", b"header.payload")
assert verify(Algorithm.HS256, b"secret", b"header.payload", base64url_encode(signature))
```

Asking for the `NONE` algorithm raises `NoneAlgorithmUsed`.

## What is not included

The gateway only forwards: the login and sign-up service, the chat service
and the admin service it talks to are not part of this package. `AdminStore`
and `ChatRoom` answer request bodies but come with no HTTP server of their
own, and `jwt_algorithm` signs and verifies token segments but does not build
or decode whole tokens.