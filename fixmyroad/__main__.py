from fixmyroad.server import main

main()
