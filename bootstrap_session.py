# bootstrap_session.py — log in once, print a StringSession for TG_SESSION_STRING
from telethon.sync import TelegramClient
from telethon.sessions import StringSession

from config import req

def main():
    with TelegramClient(StringSession(), int(req("TG_API_ID")), req("TG_API_HASH")) as client:
        me = client.get_me()
        print(f"✅ Logged in as {me.username or me.id}. Copy the line below into your .env as TG_SESSION_STRING=")
        print(client.session.save())

if __name__ == "__main__":
    main()
