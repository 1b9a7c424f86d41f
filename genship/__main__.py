from genship.cli import main

main()
