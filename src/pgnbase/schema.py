"""DDL definitions for the players/games/metadata schema."""

PLAYERS_SEQUENCE_DDL = "CREATE SEQUENCE IF NOT EXISTS players_id_seq START 1;"

PLAYERS_DDL = """
CREATE TABLE IF NOT EXISTS players (
    id INTEGER PRIMARY KEY DEFAULT nextval('players_id_seq'),
    name TEXT NOT NULL UNIQUE,
    rating INTEGER,
    game_count INTEGER NOT NULL DEFAULT 0
);
"""

GAMES_SEQUENCE_DDL = "CREATE SEQUENCE IF NOT EXISTS games_id_seq START 1;"

# white/black hold players.id values; not declared as FOREIGN KEY.
GAMES_DDL = """
CREATE TABLE IF NOT EXISTS games (
    id INTEGER PRIMARY KEY DEFAULT nextval('games_id_seq'),
    white INTEGER NOT NULL,
    black INTEGER NOT NULL,
    white_rating INTEGER,
    black_rating INTEGER,
    date TEXT NOT NULL,
    speed INTEGER,
    site TEXT,
    fen TEXT,
    outcome INTEGER NOT NULL CHECK (outcome IN (1, 2, 3)),
    moves TEXT NOT NULL
);
"""

METADATA_DDL = """
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

DEFAULT_TITLE = "Untitled"

SEED_METADATA = "INSERT OR IGNORE INTO metadata (key, value) VALUES ('title', ?)"

# Order for table creation (sequences before the tables that use them)
ALL_DDL = [
    PLAYERS_SEQUENCE_DDL,
    PLAYERS_DDL,
    GAMES_SEQUENCE_DDL,
    GAMES_DDL,
    METADATA_DDL,
]

# Applied to write connections during a bulk import.
BULK_LOAD_SETTINGS = [
    "SET checkpoint_threshold = '1GB'",
]
