from netpresence.main import main

main()
