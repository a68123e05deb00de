"""Entry point for ``python -m gamemaster <command>``.

Commands:
    init      – print the opening snapshot for a scenario
    sanitize  – validate and repair one raw game-master payload
    replay    – replay recorded payloads (JSONL) to a final snapshot and ending
    hint      – classify a choice and predict its impact
"""
from gamemaster.cli import main

if __name__ == "__main__":
    main()
