import msgspec


class ChannelMessage(msgspec.Struct):
    event: str
    data: str

    @classmethod
    def load(cls, data: bytes):
        return msgspec.json.decode(data, type=cls)

    def dump(self) -> bytes:
        return msgspec.json.encode(self)
