from errtrace.cli import main

main()
