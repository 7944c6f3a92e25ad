"""Minimal console chat on top of the conversation manager.

Commands: /new, /sessions, /load <id>, /mood <1-5> [note], /summary,
/export [dir], /quit. Typing a number picks a suggested reply.
"""

from pulih_core.api.console import ConsoleAdvisory, ConsoleView
from pulih_core.api.service import create_chat_screen, list_sessions
from pulih_core.domain.exceptions import BusinessError


def main() -> None:
    view = ConsoleView()
    screen = create_chat_screen(view, advisory=ConsoleAdvisory())
    screen.new_chat()
    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if not line:
            continue
        if line.isdigit() and 0 < int(line) <= len(view.last_suggestions):
            line = view.last_suggestions[int(line) - 1]
        try:
            if line == "/quit":
                break
            elif line == "/new":
                screen.new_chat()
            elif line == "/sessions":
                for s in list_sessions():
                    print(f"{s['id']}  {s['updated_at'][:10]}  {s['title']}")
            elif line.startswith("/load "):
                screen.load_session(line.split(maxsplit=1)[1])
            elif line.startswith("/mood "):
                parts = line.split(maxsplit=2)
                screen.notify_mood(int(parts[1]), parts[2] if len(parts) > 2 else "")
            elif line == "/summary":
                screen.summarize_session()
            elif line.startswith("/export"):
                parts = line.split(maxsplit=1)
                print(screen.write_transcript(parts[1] if len(parts) > 1 else "."))
            else:
                view.last_suggestions = []
                screen.send(line)
        except (BusinessError, ValueError, IndexError) as e:
            print(f"[Error: {e}]")


if __name__ == "__main__":
    main()
