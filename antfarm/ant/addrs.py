import contextlib
import socket


def get_addrs(count: int, host: str = "127.0.0.1") -> list[str]:
    """
    Reserve ``count`` distinct free local ports and return them as
    ``":port"`` address strings.

    All sockets are held open until every port is chosen so the same port
    is never handed out twice.
    """
    with contextlib.ExitStack() as stack:
        ports: list[int] = []
        for _ in range(count):
            sock = stack.enter_context(
                socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            )
            sock.bind((host, 0))
            ports.append(sock.getsockname()[1])

    return [f":{port}" for port in ports]
