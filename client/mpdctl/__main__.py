"""CLI entry point for the mpdctl client.

Usage::

    mpdctl --host localhost status
    mpdctl queue
    mpdctl idle player mixer --loop
"""

import argparse
import configparser
import logging
import os
import sys

from . import (
    DEFAULT_PORT, MpdConnection, MpdError, Position, SongId, Subsystem,
)
from .colors import (
    ColorWriter, format_duration, format_pair, format_song, format_state,
)

DEFAULT_HOST = "localhost"


def cmd_version(conn, args, cw):
    """Handle the 'version' subcommand."""
    print(conn.version)


def cmd_status(conn, args, cw):
    """Handle the 'status' subcommand."""
    status = conn.status()
    print(format_pair("state", format_state(status.state, cw), cw))
    print(format_pair("volume", status.volume, cw))
    for name in ("repeat", "random", "single", "consume"):
        print(format_pair(name, "on" if getattr(status, name) else "off", cw))
    print(format_pair("queue", "{} songs (version {})".format(
        status.queue_len, status.queue_version), cw))
    if status.song is not None:
        print(format_pair("song", "#{} (id {})".format(
            status.song.pos, status.song.id), cw))
    if status.elapsed is not None or status.duration is not None:
        print(format_pair("time", "{}/{}".format(
            format_duration(status.elapsed),
            format_duration(status.duration)), cw))
    if status.bitrate is not None:
        print(format_pair("bitrate", "{} kbps".format(status.bitrate), cw))
    if status.audio is not None:
        print(format_pair("audio", status.audio, cw))
    if status.updating_db is not None:
        print(format_pair("updating_db", status.updating_db, cw))
    if status.error:
        print(format_pair("error", cw.error(status.error), cw))


def cmd_stats(conn, args, cw):
    """Handle the 'stats' subcommand."""
    stats = conn.stats()
    print(format_pair("artists", stats.artists, cw))
    print(format_pair("albums", stats.albums, cw))
    print(format_pair("songs", stats.songs, cw))
    print(format_pair("uptime", format_duration(stats.uptime), cw))
    print(format_pair("playtime", format_duration(stats.playtime), cw))
    print(format_pair("db_playtime", format_duration(stats.db_playtime), cw))
    print(format_pair("db_update", stats.db_update.isoformat(), cw))


def cmd_current(conn, args, cw):
    """Handle the 'current' subcommand."""
    song = conn.currentsong()
    if song is None:
        print(cw.dim("Nothing playing"))
        return
    print(format_song(song, cw))


def cmd_queue(conn, args, cw):
    """Handle the 'queue' subcommand."""
    for song in conn.queue():
        print(format_song(song, cw))


def cmd_playlists(conn, args, cw):
    """Handle the 'playlists' subcommand."""
    for playlist in conn.playlists():
        print("{}\t{}".format(playlist.name, cw.dim(playlist.last_mod)))


def cmd_outputs(conn, args, cw):
    """Handle the 'outputs' subcommand."""
    for output in conn.outputs():
        enabled = cw.success("on") if output.enabled else cw.dim("off")
        print("{}\t{}\t{}\t{}".format(
            output.id, enabled, output.name, output.plugin))


def cmd_enable(conn, args, cw):
    """Handle the 'enable' subcommand."""
    conn.output_enable(args.id)


def cmd_disable(conn, args, cw):
    """Handle the 'disable' subcommand."""
    conn.output_disable(args.id)


def cmd_toggle(conn, args, cw):
    """Handle the 'toggle' subcommand."""
    conn.output_toggle(args.id)


def cmd_play(conn, args, cw):
    """Handle the 'play' subcommand."""
    if args.id is not None:
        conn.play_at(SongId(args.id))
    elif args.pos is not None:
        conn.play_at(Position(args.pos))
    else:
        conn.play()


def cmd_pause(conn, args, cw):
    conn.toggle_pause()


def cmd_stop(conn, args, cw):
    conn.stop()


def cmd_next(conn, args, cw):
    conn.next()


def cmd_prev(conn, args, cw):
    conn.prev()


def cmd_volume(conn, args, cw):
    """Handle the 'volume' subcommand."""
    if not 0 <= args.volume <= 100:
        print("Error: volume must be between 0 and 100", file=sys.stderr)
        sys.exit(1)
    conn.volume(args.volume)


def cmd_update(conn, args, cw):
    """Handle the 'update' subcommand."""
    job = conn.update(args.path)
    print(format_pair("updating_db", job, cw))


def cmd_decoders(conn, args, cw):
    """Handle the 'decoders' subcommand."""
    for plugin in conn.decoders():
        print(cw.bold(plugin.name))
        if plugin.suffixes:
            print("  {}".format(format_pair(
                "suffixes", " ".join(plugin.suffixes), cw)))
        if plugin.mime_types:
            print("  {}".format(format_pair(
                "mime_types", " ".join(plugin.mime_types), cw)))


def _wait_interruptibly(conn, subsystems):
    """Wait for changes; Ctrl-C cancels the wait with noidle.

    Returns the changed subsystems, or None if interrupted.
    """
    wait = conn.idle(*subsystems)
    try:
        return wait.get()
    except KeyboardInterrupt:
        wait.cancel()
        wait.get()
        return None


def cmd_idle(conn, args, cw):
    """Handle the 'idle' subcommand."""
    subsystems = [Subsystem(name) for name in args.subsystems]
    while True:
        changed = _wait_interruptibly(conn, subsystems)
        if changed is None:
            return
        for subsystem in sorted(changed, key=lambda s: s.value):
            print(format_pair("changed", subsystem.value, cw))
        sys.stdout.flush()
        if not args.loop:
            return


def cmd_messages(conn, args, cw):
    """Handle the 'messages' subcommand."""
    conn.subscribe(args.channel)
    while True:
        for message in conn.readmessages():
            print(format_pair(message.channel, message.message, cw))
        sys.stdout.flush()
        if _wait_interruptibly(conn, [Subsystem.MESSAGE]) is None:
            return


def cmd_send(conn, args, cw):
    """Handle the 'send' subcommand."""
    conn.sendmessage(args.channel, args.message)


def _default_config_path(host=None, port=None):
    """Return the path to mpdctl.conf in the client directory.

    If the file does not exist but mpdctl.conf.example does, copy it to
    create a starter config.  When *host* or *port* are provided (from
    CLI flags), those values are written into the generated config.
    """
    client_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    conf = os.path.join(client_dir, "mpdctl.conf")
    if not os.path.exists(conf):
        example = os.path.join(client_dir, "mpdctl.conf.example")
        if os.path.exists(example):
            try:
                with open(example, "r") as src, open(conf, "w") as dst:
                    content = src.read()
                    if host is not None:
                        content = content.replace(
                            "host = localhost", "host = {}".format(host))
                    if port is not None:
                        content = content.replace(
                            "port = 6600", "port = {}".format(port))
                    dst.write(content)
            except OSError as e:
                logging.getLogger(__name__).debug(
                    "Could not create %s: %s", conf, e)
    return conf


def _load_config(path, explicit):
    """Load settings from a config file.

    Args:
        path: File path to read.
        explicit: True if the user passed --config (errors are fatal).

    Returns a dict with keys 'host', 'port', 'password', 'timeout'
    (any may be None).
    """
    if not os.path.exists(path):
        if explicit:
            print("Error: config file not found: {}".format(path),
                  file=sys.stderr)
            sys.exit(1)
        return {}

    config = configparser.ConfigParser()
    try:
        config.read(path)
    except configparser.Error as e:
        if explicit:
            print("Error: failed to parse config file: {}".format(e),
                  file=sys.stderr)
            sys.exit(1)
        print("Warning: failed to parse config file: {}".format(e),
              file=sys.stderr)
        return {}

    result = {}

    for key in ("host", "password"):
        value = config.get("connection", key, fallback=None)
        if value is not None:
            value = value.strip() or None
        result[key] = value

    for key, getter in (("port", config.getint),
                        ("timeout", config.getfloat)):
        try:
            result[key] = getter("connection", key, fallback=None)
        except ValueError as e:
            if explicit:
                print("Error: invalid {} in config file: {}".format(key, e),
                      file=sys.stderr)
                sys.exit(1)
            print("Warning: invalid {} in config file: {}".format(key, e),
                  file=sys.stderr)
            result[key] = None

    return result


def _split_mpd_host(value):
    """Split an MPD_HOST value of the form [password@]host.

    Returns (host, password); either may be None.
    """
    if not value:
        return (None, None)
    password, sep, host = value.rpartition("@")
    if not sep:
        return (value, None)
    return (host or None, password or None)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the command-line tool."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main() -> None:
    """Parse arguments and dispatch to the appropriate subcommand."""
    # --- Pre-parse: resolve env vars for help string defaults ---
    env_host, env_password = _split_mpd_host(os.environ.get("MPD_HOST"))
    env_port_str = os.environ.get("MPD_PORT")
    env_port = None
    if env_port_str:
        try:
            env_port = int(env_port_str)
        except ValueError:
            print(
                "Error: MPD_PORT must be an integer, got: {!r}".format(
                    env_port_str
                ),
                file=sys.stderr,
            )
            sys.exit(1)

    parser = argparse.ArgumentParser(
        prog="mpdctl",
        description="Music Player Daemon client",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Daemon hostname or socket path (default: {})".format(
            env_host if env_host is not None else DEFAULT_HOST),
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Daemon port (default: {})".format(
            env_port if env_port is not None else DEFAULT_PORT),
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Socket timeout in seconds (default: none)",
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="PATH",
        help="Path to config file (default: client/mpdctl.conf)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    subparsers.add_parser("version", help="Print the protocol version")
    subparsers.add_parser("status", help="Show player status")
    subparsers.add_parser("stats", help="Show database statistics")
    subparsers.add_parser("current", help="Show the current song")
    subparsers.add_parser("queue", help="List the play queue")
    subparsers.add_parser("playlists", help="List stored playlists")
    subparsers.add_parser("outputs", help="List audio outputs")

    for name, help_text in (("enable", "Enable an audio output"),
                            ("disable", "Disable an audio output"),
                            ("toggle", "Toggle an audio output")):
        p_out = subparsers.add_parser(name, help=help_text)
        p_out.add_argument("id", type=int, help="Output id")

    p_play = subparsers.add_parser("play", help="Start playback")
    p_play.add_argument("pos", type=int, nargs="?", default=None,
                        help="Queue position to play")
    p_play.add_argument("--id", type=int, default=None,
                        help="Song id to play")

    subparsers.add_parser("pause", help="Toggle pause")
    subparsers.add_parser("stop", help="Stop playback")
    subparsers.add_parser("next", help="Play the next song")
    subparsers.add_parser("prev", help="Play the previous song")

    p_volume = subparsers.add_parser("volume", help="Set the volume")
    p_volume.add_argument("volume", type=int, help="Volume (0-100)")

    p_update = subparsers.add_parser("update",
                                     help="Update the music database")
    p_update.add_argument("path", nargs="?", default=None,
                          help="Only update below this path")

    subparsers.add_parser("decoders", help="List decoder plugins")

    p_idle = subparsers.add_parser(
        "idle", help="Wait for changes and print the changed subsystems")
    p_idle.add_argument("subsystems", nargs="*",
                        choices=[s.value for s in Subsystem],
                        metavar="SUBSYSTEM",
                        help="Subsystems to watch (all if omitted)")
    p_idle.add_argument("--loop", action="store_true",
                        help="Keep waiting until interrupted")

    p_messages = subparsers.add_parser(
        "messages", help="Subscribe to a channel and print its messages")
    p_messages.add_argument("channel", help="Channel name")

    p_send = subparsers.add_parser("send", help="Send a message to a channel")
    p_send.add_argument("channel", help="Channel name")
    p_send.add_argument("message", help="Message text")

    args = parser.parse_args()
    setup_logging(args.verbose)

    # --- Load config file ---
    config_path = (args.config if args.config
                   else _default_config_path(args.host, args.port))
    explicit_config = bool(args.config)
    cfg = {}
    if config_path:
        cfg = _load_config(config_path, explicit_config)

    # --- Resolve host (CLI > env > config > default) ---
    if args.host is not None:
        host = args.host
    elif env_host is not None:
        host = env_host
    elif cfg.get("host") is not None:
        host = cfg["host"]
    else:
        host = DEFAULT_HOST

    # --- Resolve port (CLI > env > config > default) ---
    if args.port is not None:
        port = args.port
    elif env_port is not None:
        port = env_port
    elif cfg.get("port") is not None:
        port = cfg["port"]
    else:
        port = DEFAULT_PORT

    timeout = args.timeout if args.timeout is not None else cfg.get("timeout")
    password = env_password if env_password is not None \
        else cfg.get("password")

    dispatch = {
        "current": cmd_current,
        "decoders": cmd_decoders,
        "disable": cmd_disable,
        "enable": cmd_enable,
        "idle": cmd_idle,
        "messages": cmd_messages,
        "next": cmd_next,
        "outputs": cmd_outputs,
        "pause": cmd_pause,
        "play": cmd_play,
        "playlists": cmd_playlists,
        "prev": cmd_prev,
        "queue": cmd_queue,
        "send": cmd_send,
        "stats": cmd_stats,
        "status": cmd_status,
        "stop": cmd_stop,
        "toggle": cmd_toggle,
        "update": cmd_update,
        "version": cmd_version,
        "volume": cmd_volume,
    }

    cw = ColorWriter()
    try:
        with MpdConnection(host, port, timeout=timeout,
                           password=password) as conn:
            dispatch[args.command](conn, args, cw)
    except ConnectionRefusedError:
        print(
            "Error: could not connect to {}:{}".format(host, port),
            file=sys.stderr,
        )
        sys.exit(1)
    except OSError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)
    except MpdError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
