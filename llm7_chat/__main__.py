from llm7_chat.cli import main

main()
