import asyncio
import os

import discord
from discord.ext import commands
from openai import OpenAI

from config.defaults import DEFAULT_CHAT_MODEL
from config.defaults import DEFAULT_CHAT_TEMPERATURE
from config.defaults import DEFAULT_CLASSIFIER_TEMPERATURE
from config.defaults import DEFAULT_DB_PATH
from config.defaults import DEFAULT_EXPLANATION_TEMPERATURE
from config.defaults import DEFAULT_HEALTH_PORT
from config.defaults import DEFAULT_OPENAI_MODEL
from config.defaults import DEFAULT_STUDY_TOOLS_TEMPERATURE
from db.migrate import init_db
from learning.channel_registry import ChannelRegistry
from learning.prompts import load_prompt_pack
from misc.discord_text import edit_interaction_chunked
from misc.discord_text import reply_chunked
from misc.health_server import start_health_server
from misc.runtime_wiring import wire_bot_runtime
from misc.settings import env_float
from misc.settings import parse_id_set

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")
if not OPENAI_API_KEY:
    raise RuntimeError("Missing OPENAI_API_KEY env var")

OPENAI_MODEL = os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL)
CHAT_MODEL = os.getenv("STUDYLOG_CHAT_MODEL", DEFAULT_CHAT_MODEL)
CLASSIFIER_TEMPERATURE = env_float("STUDYLOG_CLASSIFIER_TEMPERATURE", DEFAULT_CLASSIFIER_TEMPERATURE)
EXPLANATION_TEMPERATURE = env_float("STUDYLOG_EXPLANATION_TEMPERATURE", DEFAULT_EXPLANATION_TEMPERATURE)
STUDY_TOOLS_TEMPERATURE = env_float("STUDYLOG_STUDY_TOOLS_TEMPERATURE", DEFAULT_STUDY_TOOLS_TEMPERATURE)
CHAT_TEMPERATURE = env_float("STUDYLOG_CHAT_TEMPERATURE", DEFAULT_CHAT_TEMPERATURE)

# Test and production servers are both whitelisted; extra ids may be appended.
ALLOWED_GUILD_IDS = (
    parse_id_set(os.getenv("TEST_GUILD_ID"))
    | parse_id_set(os.getenv("PROD_GUILD_ID"))
    | parse_id_set(os.getenv("STUDYLOG_ALLOWED_GUILD_IDS"))
)
if not ALLOWED_GUILD_IDS:
    print("[CFG] no guild ids configured; every message and command will be ignored")

SYNC_COMMANDS = os.getenv("STUDYLOG_SYNC_COMMANDS", "1").strip() == "1"
try:
    HEALTH_PORT = int(os.getenv("PORT", str(DEFAULT_HEALTH_PORT)).strip() or DEFAULT_HEALTH_PORT)
except ValueError:
    HEALTH_PORT = DEFAULT_HEALTH_PORT

PROMPTS_PATH = os.getenv("STUDYLOG_PROMPTS_PATH")
PROMPTS, PROMPTS_WARNING = load_prompt_pack(PROMPTS_PATH)
if PROMPTS_WARNING:
    print(f"[CFG] {PROMPTS_WARNING}")

print(
    f"[CFG] model={OPENAI_MODEL} chat_model={CHAT_MODEL} "
    f"classifier_t={CLASSIFIER_TEMPERATURE} explanation_t={EXPLANATION_TEMPERATURE} "
    f"guilds={len(ALLOWED_GUILD_IDS)} sync_commands={SYNC_COMMANDS} port={HEALTH_PORT} "
    f"prompts={PROMPTS.version} source={'file' if PROMPTS_PATH and not PROMPTS_WARNING else 'builtin'}"
)

# =========================
# SQLITE
# =========================
DB_PATH = os.getenv("STUDYLOG_DB_PATH", DEFAULT_DB_PATH)
db_conn = init_db(DB_PATH)
db_lock = asyncio.Lock()
print(f"[DB] Using DB_PATH={DB_PATH}")

client = OpenAI(api_key=OPENAI_API_KEY)
channel_registry = ChannelRegistry(db_lock=db_lock, db_conn=db_conn)

# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(command_prefix="!", intents=intents)

wire_bot_runtime(
    bot,
    allowed_guild_ids=ALLOWED_GUILD_IDS,
    db_lock=db_lock,
    db_conn=db_conn,
    channel_registry=channel_registry,
    client=client,
    prompts=PROMPTS,
    openai_model=OPENAI_MODEL,
    chat_model=CHAT_MODEL,
    classifier_temperature=CLASSIFIER_TEMPERATURE,
    explanation_temperature=EXPLANATION_TEMPERATURE,
    study_tools_temperature=STUDY_TOOLS_TEMPERATURE,
    chat_temperature=CHAT_TEMPERATURE,
    send_reply_chunked=reply_chunked,
    send_interaction_chunked=edit_interaction_chunked,
    sync_commands=SYNC_COMMANDS,
    health_port=HEALTH_PORT,
    start_health_server_func=start_health_server,
)

bot.run(DISCORD_TOKEN)
