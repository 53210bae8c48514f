# chatrelay

A small chat system over TCP, built on asyncio. A relay server keeps track of
which users are online and forwards each message to the user it is addressed
to. Clients send text messages and whole files to each other. A message can
also be sent to every user at once.

## Installing

    pip install .

To run the tests:

    pip install ".[test]"
    pytest

## Running the server

    chatrelay-server [--host HOST] [--port PORT]

By default the server listens on `0.0.0.0`, port 8989, and runs until it is
interrupted.

Each client first sends its user id as the first chunk of data on the
connection. After that, every frame it sends is a JSON object, and the server
forwards it according to the `receiver` field:

- If the receiver is a connected user, the frame goes to that user.
- If the receiver is `BroadcastMessages`, the frame goes to every connected
  user except the sender.
- Otherwise the frame is dropped.

Each time a user comes online, the server sends the updated list of online
users to everyone who is connected. When a user disconnects, the server
removes them from that list, but it sends no new list.

The server can also be run from code. `RelayServer` is asynchronous:

    import asyncio
    from chatrelay.server import RelayServer

    async def run():
        server = RelayServer("127.0.0.1", 0)   # port 0 picks a free port
        await server.start()
        print(server.port, server.online_users())
        await server.close()

    asyncio.run(run())

`RelayServer.serve_forever()` starts the server if it is not already running.
It then serves until it is cancelled, and closes the server when it stops.

## Using the client

`ChatClient` is also asynchronous. It can be used as an async context manager:

    import asyncio
    from chatrelay.client import ChatClient

    async def run():
        async with ChatClient("alice", "127.0.0.1", 8989) as client:
            print(client.online)            # filled in during connect()
            client.select_receiver("bob")
            await client.send_text("hello")
            await client.send_file("notes.txt")
            async for message in client.messages():
                print(message)

    asyncio.run(run())

`connect()` sends the user name. It then waits until the server sends the
first list of online users, and raises `ConnectionError` if the server closes
the connection first. `send_text` and `send_file` send to the receiver chosen
with `select_receiver`, and return the message that was sent. `messages()`
yields each frame it can decode until the server closes the connection, and
skips frames it cannot decode. Each time a list of online users arrives,
`client.online` is updated.

## Wire format

`chatrelay.protocol` defines the messages. On the wire, each one is a
UTF-8 JSON object:

- `TextMessage`: `messageType` `"0"`, with `sender`, `receiver` and `content`.
- `FileMessage`: `messageType` `"1"`, which also carries `name`, `size` (a
  string) and `suffix`. `FileMessage.from_path` builds one from a file on
  disk. The file contents travel as text, decoded from UTF-8, and bytes that
  are not valid UTF-8 are replaced. Binary files are therefore not carried
  exactly. `FileMessage.data` gives the contents back as bytes.
- `OnlineUsers`: `messageType` `"3"`, with the `onlineUser` list.

`MessageType` lists the three type values. Each message class has a
`to_bytes()` method.

`decode(data)` turns one frame into one of these objects. It raises
`ProtocolError` (a `ValueError`) for empty data, for data that is not JSON,
for JSON that is not an object, and for an unknown `messageType`.

`recipient_of(data)` reads the `receiver` field from raw bytes, and returns
`""` when the frame has none.

`classify_prefixed(data)` handles the older framing, where the first byte is
a tag: `0` means text and `1` means file. It returns `None` for empty data,
`(MessageType.TEXT, str)` for a text frame or `(MessageType.FILE, bytes)` for
a file frame. Any other tag raises `ProtocolError`.

`icon_for_suffix(suffix)` returns the name of the icon resource for a file:
`image/txt.png` for `txt`, `image/WORD.png` for `doc` and `docx`, and
`image/file.png` for anything else.

## Conversation state

`chatrelay.session.ChatBook` holds the state of one logged-in user:

- `add_contacts` takes a mapping of user id to icon path and stores the
  contacts in `contacts`.
- `update_online` and `receive(OnlineUsers)` mark the listed contacts as
  online.
- There is one `ChatEntry` history for each open conversation. `open_chat`,
  `close_chat`, `history`, `open_chats` and `current_chat` manage them.
- `select` chooses the receiver. `send_text` and `send_file` record the
  outgoing entry and return the frame to send. They raise `ValueError` if no
  receiver has been selected. When the receiver is `BroadcastMessages`,
  `send_text` records the line in the chat with every online user.
- `receive` files each incoming message under the user who sent it, and
  opens that chat if it is not open yet. Received files are numbered from 1.
  `save_file(index, path)` writes a received file to disk, and raises
  `KeyError` for an unknown number.

`ChatBook` does no networking of its own. Pass it the messages from
`ChatClient.messages()`, and send the frames it returns with
`ChatClient.send_text` or `ChatClient.send_file`, or write their `to_bytes()`
to the connection yourself.

`format_history_line(content, when=None)` formats a plain-text history line
such as `[12:30:05] 我: hello`.

## Bubble layout

`chatrelay.layout` works out where the parts of a chat bubble go, using
integer `Rect` values:

- `bubble_layout` places the bubble, the text, an optional icon and the
  timestamp inside an item rectangle. It aligns outgoing messages to the
  right and incoming messages to the left.
- `bubble_size_hint` gives the preferred `(width, height)` of an item.
- `max_bubble_width` gives the widest a bubble may be: by default 60% of the
  item width.

`BubbleStyle` holds the paddings, sizes and colours. You measure the text
yourself and pass in its width or height.

## What is not included

- There is no graphical interface. The package has no windows, and no
  drawing of bubbles or icons. `chatrelay.layout` only computes their
  geometry, and the icon names from `icon_for_suffix` refer to images that are
  not shipped.
- There is no user registration, no password check and no account storage.
  The server accepts any user id a client sends.
- Chat histories and received files live only in memory, until
  `ChatBook.save_file` writes a file to disk.