"""Help, in-session command reference and tutorial text (markdown)."""

HELP_TEXT = """\
# JARVIS - Just A Rather Very Intelligent System

**Usage:** `jarvis [OPTIONS] COMMAND [ARGS]...`

## Commands

| Command | Description |
|---|---|
| `start` | Start an interactive chat session (default) |
| `help` | Display this help |
| `status` | Show configuration, authentication and tool status |
| `tutorial` | Walk through the main features |
| `config setup` | Interactive setup of the model and API key |
| `config show` | Show the current configuration (secrets masked) |
| `config reset` | Delete the configuration file |
| `config update-key` | Replace the stored API key |
| `config update-gemini` | Same as `config update-key` |
| `config test-connection` | Send a test request to the model |
| `config backup [PATH]` | Copy the configuration to a file |
| `config restore PATH` | Restore the configuration from a backup |
| `auth login SERVICE` | Store access tokens for a service (spotify) |
| `auth status` | Show which services are authenticated |
| `auth logout SERVICE` | Forget tokens for a service, or `all` |

## What JARVIS can do

- 🎵 **Spotify**: "play some jazz", "pause music", "what's playing?", "volume 40"
- ✅ **Tasks**: "add task: buy groceries", "show my tasks", "complete the groceries task"
- 🔧 **Git**: "git status", "show the last 5 commits", "what did I change?"
- 📁 **Files**: "read setup.cfg", "list this directory", "what time is it?"
- 💬 **General**: ask questions, get code help, brainstorm ideas

## Getting started

1. Get a Gemini API key: https://aistudio.google.com/app/apikey
2. Run `jarvis config setup` (or export `GEMINI_API_KEY`)
3. Optionally run `jarvis auth login spotify`
4. Start chatting: `jarvis`
"""

SESSION_HELP = """\
**In-session commands**

- `help` - show this list
- `clear` - forget the conversation so far
- `history` - show the conversation so far
- `tools` - list available tools
- `exit`, `quit`, `bye` - end the session

Anything else is sent to JARVIS.
"""

TUTORIAL_TOPICS = {
    "setup": """\
## 📚 First-time setup

1. Get your Gemini API key at https://aistudio.google.com/app/apikey
2. Run `jarvis config setup` and paste the key
3. Authenticate services (optional): `jarvis auth login spotify`
4. Start chatting with `jarvis start`, or just `jarvis`
""",
    "chat": """\
## 💬 Basic chat

JARVIS can answer questions, help with code, brainstorm and explain.

- Be specific in your questions
- JARVIS remembers the recent conversation
- Type `exit` or `quit` to end the session
""",
    "spotify": """\
## 🎵 Spotify control

Setup required: `jarvis auth login spotify`

- "play Bohemian Rhapsody" - search and play a song
- "play the album Discovery" - search and play an album
- "pause" / "resume" - control playback
- "next song" - skip to the next track
- "what's playing?" - show the current track
- "volume 50" - set the volume
""",
    "tasks": """\
## ✅ Task management

Tasks are kept locally in `~/.jarvis/tasks.json`.

- "add task: buy groceries" - create a task
- "add a high priority task to call the bank by Friday"
- "show my tasks" - list pending tasks
- "complete the groceries task" - mark it done
- "delete the task about the meeting" - remove it

Priorities: 🔴 high, 🟡 medium, 🟢 low
""",
    "git": """\
## 🔧 Git

JARVIS reads the repository in the current directory.

- "git status" - branch plus staged, modified and untracked files
- "show the last 5 commits" - recent history
- "what have I staged?" - staged diff
""",
}

TUTORIAL_OUTRO = "👍 Ready to start? Run: `jarvis start`"
