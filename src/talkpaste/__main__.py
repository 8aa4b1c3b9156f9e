from talkpaste.app import main

main()
