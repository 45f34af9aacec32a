import threading

from xpgps import core


def test_list_ports(monkeypatch, capsys) -> None:
    monkeypatch.setattr(core, "find_ports", lambda: ["/dev/ttyS0", "/dev/ttyUSB0"])
    assert core.main(["--list-ports"]) == 0
    assert capsys.readouterr().out.split() == ["/dev/ttyS0", "/dev/ttyUSB0"]


def test_serial_port_required() -> None:
    assert core.main(["--xplane", "127.0.0.1"]) == 2


def test_bad_xplane_address() -> None:
    assert core.main(["--dummy", "--xplane", "127.0.0.1:notaport"]) == 2


def test_discovery_failure(monkeypatch) -> None:
    monkeypatch.setattr(core, "find_xplane", lambda timeout: None)
    assert core.main(["--dummy", "--discover-timeout", "0.1"]) == 1


def test_dummy_run_for_fixed_time(xplane_sim, rpos_datagram) -> None:
    host, port = xplane_sim.getsockname()

    def answer():
        _, client = xplane_sim.recvfrom(64)
        xplane_sim.sendto(rpos_datagram(lat=1.0, lon=2.0), client)

    responder = threading.Thread(target=answer, daemon=True)
    responder.start()

    assert core.main(["--dummy", "--xplane", f"{host}:{port}", "--secs", "0.5",
                      "--precision", "enhanced", "--freq", "2"]) == 0
    responder.join(2.0)
